from x86isa.util import LogType, log


def remove_duplicate_instructions(instruction_set):
    """removes instructions identical to an instruction seen before them"""
    seen = set()

    def visited(record):
        # records are mutable and hence not hashable, their repr is.
        key = repr(record)
        if key in seen:
            return True
        seen.add(key)
        return False

    removed = instruction_set.remove_if(visited)
    for record in removed:
        log(f"removing duplicate: {record}", kind=LogType.Transform)
