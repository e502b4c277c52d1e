import contextlib

import mdis.dispatcher
import mdis.visitor

from x86isa.insndb.core import (
    EvexBInterpretation,
    MaskingOperation,
    Operand,
    OpmaskUsage,
    Tag,
    TagKind,
    Walker,
)
from x86isa.insndb.transform import TransformError


BROADCAST_32_BIT = "m32bcst"
BROADCAST_64_BIT = "m64bcst"

# the only instructions that can't use k0 as their opmask; this is only
# stated in the free-text description of the instructions.
OPMASK_REQUIRED_MNEMONICS = frozenset({
    "VGATHERDPS", "VGATHERDPD", "VGATHERQPS", "VGATHERQPD",
    "VPGATHERDD", "VPGATHERDQ", "VPGATHERQD", "VPGATHERQQ",
    "VPSCATTERDD", "VPSCATTERDQ", "VPSCATTERQD", "VPSCATTERQQ",
    "VSCATTERDPS", "VSCATTERDPD", "VSCATTERQPS", "VSCATTERQPD",
})


class EvexBVisitor(mdis.visitor.ContextVisitor):
    def __init__(self):
        self.__broadcast = None
        self.__rounding = []
        return super().__init__()

    @property
    def interpretations(self):
        if self.__broadcast is not None:
            yield self.__broadcast
        yield from self.__rounding

    @mdis.dispatcher.Hook(Operand)
    @contextlib.contextmanager
    def dispatch_operand(self, instance):
        if self.__broadcast is None:
            if BROADCAST_32_BIT in instance.name:
                self.__broadcast = \
                    EvexBInterpretation.EVEX_B_ENABLES_32_BIT_BROADCAST
            elif BROADCAST_64_BIT in instance.name:
                self.__broadcast = \
                    EvexBInterpretation.EVEX_B_ENABLES_64_BIT_BROADCAST
        yield instance

    @mdis.dispatcher.Hook(Tag)
    @contextlib.contextmanager
    def dispatch_tag(self, instance):
        kind = instance.kind
        if kind is TagKind.ER:
            self.__rounding.append(
                EvexBInterpretation.EVEX_B_ENABLES_STATIC_ROUNDING_CONTROL)
        elif kind is TagKind.SAE:
            self.__rounding.append(
                EvexBInterpretation.EVEX_B_ENABLES_SUPPRESS_ALL_EXCEPTIONS)
        elif kind in (TagKind.OPMASK, TagKind.ZEROING, TagKind.OTHER):
            pass
        else:
            raise ValueError(instance)
        yield instance


class OpmaskVisitor(mdis.visitor.ContextVisitor):
    def __init__(self):
        self.opmask = False
        self.zeroing = False
        return super().__init__()

    @mdis.dispatcher.Hook(Tag)
    @contextlib.contextmanager
    def dispatch_tag(self, instance):
        if instance.kind is TagKind.OPMASK:
            self.opmask = True
        elif instance.kind is TagKind.ZEROING:
            self.zeroing = True
        yield instance


def visit(visitor, syntax):
    walker = Walker()
    for (instance, *_) in walker((syntax,)):
        with visitor(instance):
            pass
    return visitor


def add_evex_b_interpretation(instruction_set):
    """Fills in the possible meanings of the EVEX.b bit.

    Depending on the operands of the instruction, the bit enables embedded
    broadcast from an m32bcst or m64bcst memory operand, static rounding
    control ({er}) or suppression of all exceptions ({sae}).  Only EVEX
    instructions are updated.

    The interpretations are appended, running this twice duplicates them.
    """
    for record in instruction_set:
        encoding = record.x86_encoding_specification
        if not encoding.evex:
            continue
        syntax = record.vendor_syntax_with_most_operands
        visitor = visit(EvexBVisitor(), syntax)
        encoding.vex_prefix.evex_b_interpretations.extend(
            visitor.interpretations)


def add_evex_opmask_usage(instruction_set):
    for record in instruction_set:
        vex_prefix = record.x86_encoding_specification.vex_prefix
        if vex_prefix is None:
            continue
        vex_prefix.masking_operation = MaskingOperation.NO_EVEX_MASKING
        vex_prefix.opmask_usage = OpmaskUsage.EVEX_OPMASK_IS_NOT_USED

        # VEX-only instructions can't use opmasks.
        if not record.x86_encoding_specification.evex:
            continue

        syntax = record.vendor_syntax_with_most_operands
        visitor = visit(OpmaskVisitor(), syntax)
        if not visitor.opmask:
            if visitor.zeroing:
                raise TransformError(
                    "instruction supports zeroing without also "
                    f"supporting opmasks: {record!r}")
            continue

        if syntax.mnemonic in OPMASK_REQUIRED_MNEMONICS:
            vex_prefix.opmask_usage = OpmaskUsage.EVEX_OPMASK_IS_REQUIRED
        else:
            vex_prefix.opmask_usage = OpmaskUsage.EVEX_OPMASK_IS_OPTIONAL
        if visitor.zeroing:
            vex_prefix.masking_operation = \
                MaskingOperation.EVEX_MASKING_MERGING_AND_ZEROING
        else:
            vex_prefix.masking_operation = \
                MaskingOperation.EVEX_MASKING_MERGING_ONLY
