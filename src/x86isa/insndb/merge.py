import copy as _copy
import dataclasses as _dataclasses

from x86isa.insndb.core import (
    OperandEncoding,
    Record,
)
from x86isa.insndb.transform import Inconsistency
from x86isa.util import LogType, log


# fields that legitimately differ between synonyms of one instruction
IGNORED_FIELDS = frozenset({
    "att_syntax",
    "description",
    "encoding_scheme",
    "syntax",
    "vendor_syntax",
})


def merge_key(record):
    # The register and the memory versions of an instruction are kept apart,
    # they have different performance characteristics.  The addressing mode
    # of all operands except the one in modrm.rm is implied by the opcode.
    syntax = record.vendor_syntax_with_most_operands
    modes = tuple(operand.addressing_mode
        for operand in syntax.operands
        if operand.encoding is OperandEncoding.MODRM_RM_ENCODING)
    return (record.raw_encoding_specification, modes)


def differences(lhs, rhs, path=""):
    """yields the dotted paths of the fields where lhs and rhs differ"""
    if (_dataclasses.is_dataclass(lhs) and _dataclasses.is_dataclass(rhs) and
            type(lhs) is type(rhs)):
        for field in _dataclasses.fields(lhs):
            key = f"{path}.{field.name}" if path else field.name
            yield from differences(getattr(lhs, field.name),
                getattr(rhs, field.name), key)
    elif lhs != rhs:
        yield path


def record_differences(canonical, merged):
    for field in _dataclasses.fields(Record):
        if field.name in IGNORED_FIELDS:
            continue
        yield from differences(getattr(canonical, field.name),
            getattr(merged, field.name), field.name)


def merge_vendor_syntax(instruction_set):
    """Merges instructions that differ only in their vendor syntax.

    Instructions are grouped by the raw encoding specification and the
    addressing mode of their modrm.rm operand.  The first instruction of
    each group is the canonical one: it receives the vendor syntaxes of
    all the other members, which are then removed.

    Members that differ from the canonical instruction in anything else
    than the syntax and the description are still merged, but each such
    pair is reported as an inconsistency.
    """
    groups = {}
    for record in instruction_set:
        groups.setdefault(merge_key(record), []).append(record)

    inconsistencies = []
    merged_ids = set()
    for (key, (canonical, *others)) in groups.items():
        for merged in others:
            fields = tuple(record_differences(canonical, merged))
            if fields:
                inconsistencies.append(Inconsistency(
                    message="merged instructions are not equivalent",
                    canonical=_copy.deepcopy(canonical),
                    merged=merged, fields=fields))
            canonical.vendor_syntax.extend(merged.vendor_syntax)
            merged_ids.add(id(merged))

    removed = instruction_set.remove_if(
        lambda record: id(record) in merged_ids)
    log(f"merged {len(removed)} instructions", kind=LogType.Transform)
    return inconsistencies


def synonymous(syntax, other):
    if (syntax.mnemonic != other.mnemonic or
            len(syntax.operands) != len(other.operands)):
        return False
    for (operand, other_operand) in zip(syntax.operands, other.operands):
        if (operand.name != other_operand.name or
                operand.addressing_mode != other_operand.addressing_mode):
            return False
    return True


def remove_useless_operand_permutations(instruction_set):
    for record in instruction_set:
        if len(record.vendor_syntax) < 2:
            continue
        (syntax, *others) = record.vendor_syntax
        if all(synonymous(syntax, other) for other in others):
            del record.vendor_syntax[1:]
