from x86isa.insndb.transform import TransformError
from x86isa.util import log


def check_has_vendor_syntax(instruction_set):
    errors = []
    for record in instruction_set:
        if not record.vendor_syntax:
            # print as many errors as possible before failing
            log(f"instruction does not have vendor syntax: {record!r}")
            errors.append(record)
    if errors:
        raise TransformError(
            f"{len(errors)} instructions do not have vendor syntax: " +
            "; ".join(map(repr, errors)))
