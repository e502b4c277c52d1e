from x86isa.insndb.checks import check_has_vendor_syntax
from x86isa.insndb.evex import (
    add_evex_b_interpretation,
    add_evex_opmask_usage,
)
from x86isa.insndb.merge import (
    merge_vendor_syntax,
    remove_useless_operand_permutations,
)
from x86isa.insndb.removals import remove_duplicate_instructions
from x86isa.insndb.transform import (
    Registry,
    Transform,
    run_pipeline,
)


TRANSFORMS = Registry((
    Transform(name="remove_duplicate_instructions", rank=4000,
        function=remove_duplicate_instructions),
    Transform(name="add_evex_b_interpretation", rank=5500,
        function=add_evex_b_interpretation),
    Transform(name="add_evex_opmask_usage", rank=5500,
        function=add_evex_opmask_usage),
    Transform(name="merge_vendor_syntax", rank=6000,
        function=merge_vendor_syntax),
    Transform(name="remove_useless_operand_permutations", rank=6010,
        function=remove_useless_operand_permutations),
    Transform(name="check_has_vendor_syntax", rank=10000,
        function=check_has_vendor_syntax, default=False),
))


def transforms_by_name():
    return TRANSFORMS


def default_pipeline():
    return TRANSFORMS.pipeline()


def cleanup(instruction_set):
    return run_pipeline(default_pipeline(), instruction_set)
