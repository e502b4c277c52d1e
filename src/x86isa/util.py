from enum import Enum
from fnmatch import fnmatchcase
import os
from functools import lru_cache


class LogType(Enum):
    Default = "default"
    Transform = "transform"
    TransformDiff = "transform_diff"
    Patch = "patch"


@lru_cache(typed=True)
def __parse_log_env_var(silencelog_raw):
    if silencelog_raw is None:
        return dict.fromkeys(LogType, False)
    patterns = os.environ.decodevalue(silencelog_raw).lower().split(",")
    patterns = [pattern.strip() for pattern in patterns]
    if len(patterns) > 1 and not patterns[-1]:
        patterns.pop()  # trailing comma
    if patterns in (["0"], ["false"]):
        return dict.fromkeys(LogType, False)
    if patterns in (["1"], ["true"], [""]):
        patterns = []

    kinds = dict.fromkeys(LogType, True)
    for pattern in patterns:
        silence = not pattern.startswith("!")
        if not silence:
            pattern = pattern[1:]
        matches = [kind for kind in LogType
            if fnmatchcase(kind.value, pattern)]
        assert matches, (f"SILENCELOG: {pattern!r} matches no log kind, "
            f"known kinds: {' '.join(kind.value for kind in LogType)}")
        kinds.update(dict.fromkeys(matches, silence))
    return kinds


__ENCODED_SILENCELOG = os.environ.encodekey("SILENCELOG")


def silenced(kind=LogType.Default):
    # look up in os.environ._data since it is a dict and hence won't raise
    # internal exceptions to avoid triggering breakpoints on raised exceptions.
    env_var = os.environ._data.get(__ENCODED_SILENCELOG, None)
    return __parse_log_env_var(env_var)[kind]


def log(*args, kind=LogType.Default, **kwargs):
    """verbose printing, can be disabled by setting env var "SILENCELOG".
    """
    if silenced(kind):
        return
    print(*args, **kwargs)
