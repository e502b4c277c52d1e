import dataclasses as _dataclasses
import enum as _enum
import typing as _typing

import mdis.dispatcher
import mdis.walker


class DataclassMeta(type):
    def __new__(metacls, name, bases, ns):
        cls = super().__new__(metacls, name, bases, ns)
        return _dataclasses.dataclass(cls, eq=True)


class Dataclass(metaclass=DataclassMeta):
    pass


def field(factory):
    return _dataclasses.field(default_factory=factory)


class Enum(_enum.Enum):
    @classmethod
    def _missing_(cls, desc):
        keys = {item.name:item for item in cls}
        return keys.get(desc)

    def __repr__(self):
        return self.name


@_enum.unique
class AddressingMode(Enum):
    NO_ADDRESSING = _enum.auto()
    ANY_ADDRESSING_MODE = _enum.auto()
    DIRECT_ADDRESSING = _enum.auto()
    INDIRECT_ADDRESSING = _enum.auto()
    INDIRECT_ADDRESSING_WITH_BASE = _enum.auto()
    INDIRECT_ADDRESSING_WITH_DISPLACEMENT = _enum.auto()
    INDIRECT_ADDRESSING_WITH_BASE_AND_DISPLACEMENT = _enum.auto()
    INDIRECT_ADDRESSING_WITH_BASE_AND_INDEX = _enum.auto()
    INDIRECT_ADDRESSING_WITH_INDEX_AND_DISPLACEMENT = _enum.auto()
    INDIRECT_ADDRESSING_WITH_INSTRUCTION_POINTER = _enum.auto()
    INDIRECT_ADDRESSING_WITH_VSIB = _enum.auto()
    INDIRECT_ADDRESSING_BY_RSI = _enum.auto()
    INDIRECT_ADDRESSING_BY_RDI = _enum.auto()
    BLOCK_DIRECT_ADDRESSING = _enum.auto()
    LOAD_EFFECTIVE_ADDRESS = _enum.auto()
    ANY_ADDRESSING_WITH_FIXED_REGISTERS = _enum.auto()
    ANY_ADDRESSING_WITH_FLEXIBLE_REGISTERS = _enum.auto()


# where the value of the operand lives in the binary encoding
@_enum.unique
class OperandEncoding(Enum):
    ANY_ENCODING = _enum.auto()
    OPCODE_ENCODING = _enum.auto()
    MODRM_REG_ENCODING = _enum.auto()
    MODRM_RM_ENCODING = _enum.auto()
    VEX_V_ENCODING = _enum.auto()
    VEX_SUFFIX_ENCODING = _enum.auto()
    VSIB_ENCODING = _enum.auto()
    IMMEDIATE_VALUE_ENCODING = _enum.auto()
    IMPLICIT_ENCODING = _enum.auto()
    X86_STATIC_PROPERTY_ENCODING = _enum.auto()


@_enum.unique
class Usage(Enum):
    USAGE_UNKNOWN = _enum.auto()
    USAGE_READ = _enum.auto()
    USAGE_WRITE = _enum.auto()
    USAGE_READ_WRITE = _enum.auto()


@_enum.unique
class TagKind(_enum.Enum):
    ER = "er"
    SAE = "sae"
    OPMASK = "k1"
    ZEROING = "z"
    OTHER = "*"

    @classmethod
    def _missing_(cls, name):
        return cls.OTHER


@_dataclasses.dataclass(eq=True, frozen=True)
class Tag:
    name: str

    @property
    def kind(self):
        return TagKind(self.name)

    def __repr__(self):
        return f"{{{self.name}}}"


class Operand(Dataclass):
    name: str = ""
    addressing_mode: AddressingMode = AddressingMode.NO_ADDRESSING
    encoding: OperandEncoding = OperandEncoding.ANY_ENCODING
    usage: Usage = Usage.USAGE_UNKNOWN
    value_size_bits: int = 0
    register_class: str = ""
    tags: _typing.List[Tag] = field(list)

    def __post_init__(self):
        self.tags = [
            (tag if isinstance(tag, Tag) else Tag(tag))
            for tag in self.tags
        ]

    def __str__(self):
        return "".join([self.name] + list(map(repr, self.tags)))


class Syntax(Dataclass):
    mnemonic: str = ""
    operands: _typing.List[Operand] = field(list)

    def __str__(self):
        operands = ", ".join(map(str, self.operands))
        if operands:
            return f"{self.mnemonic} {operands}"
        return self.mnemonic


@_enum.unique
class VexPrefixType(Enum):
    UNDEFINED_VEX_PREFIX = _enum.auto()
    VEX_PREFIX = _enum.auto()
    EVEX_PREFIX = _enum.auto()


@_enum.unique
class VectorSize(Enum):
    VEX_VECTOR_SIZE_IS_IGNORED = _enum.auto()
    VEX_VECTOR_SIZE_128_BIT = _enum.auto()
    VEX_VECTOR_SIZE_256_BIT = _enum.auto()
    VEX_VECTOR_SIZE_512_BIT = _enum.auto()
    VEX_VECTOR_SIZE_BIT_IS_ZERO = _enum.auto()
    VEX_VECTOR_SIZE_BIT_IS_ONE = _enum.auto()


# the values correspond to the bits of the VEX.pp field
@_enum.unique
class MandatoryPrefix(Enum):
    NO_MANDATORY_PREFIX = 0
    MANDATORY_PREFIX_OPERAND_SIZE_OVERRIDE = 1
    MANDATORY_PREFIX_REPE = 2
    MANDATORY_PREFIX_REPNE = 3


# the values correspond to the bits of the VEX.mmmmm field
@_enum.unique
class MapSelect(Enum):
    UNDEFINED_OPERAND_MAP = 0
    MAP_SELECT_0F = 1
    MAP_SELECT_0F38 = 2
    MAP_SELECT_0F3A = 3


@_enum.unique
class VexWUsage(Enum):
    VEX_W_IS_IGNORED = _enum.auto()
    VEX_W_IS_ZERO = _enum.auto()
    VEX_W_IS_ONE = _enum.auto()


@_enum.unique
class EvexBInterpretation(Enum):
    EVEX_B_ENABLES_32_BIT_BROADCAST = _enum.auto()
    EVEX_B_ENABLES_64_BIT_BROADCAST = _enum.auto()
    EVEX_B_ENABLES_STATIC_ROUNDING_CONTROL = _enum.auto()
    EVEX_B_ENABLES_SUPPRESS_ALL_EXCEPTIONS = _enum.auto()


@_enum.unique
class OpmaskUsage(Enum):
    EVEX_OPMASK_IS_NOT_USED = _enum.auto()
    EVEX_OPMASK_IS_OPTIONAL = _enum.auto()
    EVEX_OPMASK_IS_REQUIRED = _enum.auto()


@_enum.unique
class MaskingOperation(Enum):
    NO_EVEX_MASKING = _enum.auto()
    EVEX_MASKING_MERGING_ONLY = _enum.auto()
    EVEX_MASKING_MERGING_AND_ZEROING = _enum.auto()


class VexPrefix(Dataclass):
    prefix_type: VexPrefixType = VexPrefixType.VEX_PREFIX
    vector_size: VectorSize = VectorSize.VEX_VECTOR_SIZE_IS_IGNORED
    mandatory_prefix: MandatoryPrefix = MandatoryPrefix.NO_MANDATORY_PREFIX
    map_select: MapSelect = MapSelect.UNDEFINED_OPERAND_MAP
    vex_w_usage: VexWUsage = VexWUsage.VEX_W_IS_IGNORED
    evex_b_interpretations: _typing.List[EvexBInterpretation] = field(list)
    opmask_usage: OpmaskUsage = OpmaskUsage.EVEX_OPMASK_IS_NOT_USED
    masking_operation: MaskingOperation = MaskingOperation.NO_EVEX_MASKING


@_enum.unique
class PrefixUsage(Enum):
    PREFIX_USAGE_IS_UNKNOWN = _enum.auto()
    PREFIX_IS_IGNORED = _enum.auto()
    PREFIX_IS_NOT_PERMITTED = _enum.auto()
    PREFIX_IS_REQUIRED = _enum.auto()


class LegacyPrefixes(Dataclass):
    rex_w_prefix: PrefixUsage = PrefixUsage.PREFIX_USAGE_IS_UNKNOWN
    operand_size_override_prefix: PrefixUsage = \
        PrefixUsage.PREFIX_USAGE_IS_UNKNOWN
    has_mandatory_address_size_override_prefix: bool = False
    has_mandatory_repe_prefix: bool = False
    has_mandatory_repne_prefix: bool = False


@_enum.unique
class ModRmUsage(Enum):
    NO_MODRM_USAGE = _enum.auto()
    FULL_MODRM = _enum.auto()
    OPCODE_EXTENSION_IN_MODRM = _enum.auto()


class EncodingSpecification(Dataclass):
    opcode: int = 0
    legacy_prefixes: LegacyPrefixes = field(LegacyPrefixes)
    vex_prefix: _typing.Optional[VexPrefix] = None
    modrm_usage: ModRmUsage = ModRmUsage.NO_MODRM_USAGE
    modrm_opcode_extension: int = 0
    immediate_value_bytes: _typing.List[int] = field(list)
    code_offset_bytes: int = 0

    @property
    def evex(self):
        return (self.vex_prefix is not None and
                self.vex_prefix.prefix_type is VexPrefixType.EVEX_PREFIX)


class Record(Dataclass):
    description: str = ""
    vendor_syntax: _typing.List[Syntax] = field(list)
    syntax: _typing.List[Syntax] = field(list)
    att_syntax: _typing.List[Syntax] = field(list)
    feature_name: str = ""
    available_in_64_bit: bool = False
    legacy_instruction: bool = False
    protection_mode: int = 0
    encoding_scheme: str = ""
    raw_encoding_specification: str = ""
    x86_encoding_specification: EncodingSpecification = \
        field(EncodingSpecification)

    def __str__(self):
        syntax = " / ".join(map(str, self.vendor_syntax))
        return f"{syntax} [{self.raw_encoding_specification}]"

    @property
    def vendor_syntax_with_most_operands(self):
        if not self.vendor_syntax:
            raise ValueError(f"instruction without vendor syntax: {self!r}")
        best = self.vendor_syntax[0]
        for syntax in self.vendor_syntax[1:]:
            if len(syntax.operands) > len(best.operands):
                best = syntax
        return best

    @property
    def mnemonics(self):
        return frozenset(syntax.mnemonic for syntax in self.vendor_syntax)


class InstructionSet:
    def __init__(self, instructions=()):
        self.__instructions = list(instructions)
        return super().__init__()

    def __repr__(self):
        return f"{self.__class__.__name__}({self.__instructions!r})"

    def __iter__(self):
        yield from self.__instructions

    def __len__(self):
        return len(self.__instructions)

    def __getitem__(self, index):
        return self.__instructions[index]

    @property
    def instructions(self):
        return self.__instructions

    @instructions.setter
    def instructions(self, instructions):
        # in place: the list returned by the getter stays live.
        self.__instructions[:] = instructions

    def remove_if(self, predicate):
        (kept, removed) = ([], [])
        for record in self:
            if predicate(record):
                removed.append(record)
            else:
                kept.append(record)
        self.instructions = kept
        return removed


class Walker(mdis.walker.Walker):
    @mdis.dispatcher.Hook(InstructionSet)
    def dispatch_instruction_set(self, instance):
        yield from self(tuple(instance))

    @mdis.dispatcher.Hook(Record)
    def dispatch_record(self, instance):
        yield from self(tuple(instance.vendor_syntax))

    @mdis.dispatcher.Hook(Syntax)
    def dispatch_syntax(self, instance):
        yield from self(tuple(instance.operands))

    @mdis.dispatcher.Hook(Operand)
    def dispatch_operand(self, instance):
        yield from self(tuple(instance.tags))
