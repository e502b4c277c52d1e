"""instruction database transforms

A transform is a function taking an InstructionSet, updating it in place
and returning the list of inconsistencies it noticed (or None).  A
transform that cannot continue raises TransformError; this stops the
pipeline, since later transforms rely on what the earlier ones did.

Transforms are collected in a Registry.  Those flagged as default form
the default pipeline, ordered by rank (ties are ordered by name); the
remaining ones are only run on request, through the same run_transform.
"""

import dataclasses as _dataclasses
import difflib as _difflib
import pprint as _pprint
import typing as _typing

from x86isa.util import LogType, log, silenced


class TransformError(ValueError):
    pass


@_dataclasses.dataclass(eq=True)
class Inconsistency:
    message: str
    canonical: _typing.Any = None
    merged: _typing.Any = None
    fields: _typing.Tuple[str, ...] = ()
    transform: str = ""

    def __str__(self):
        lines = [f"{self.transform}: {self.message}"]
        if self.fields:
            lines.append(f"    fields: {', '.join(self.fields)}")
        if self.canonical is not None:
            lines.append(f"    canonical: {self.canonical!r}")
        if self.merged is not None:
            lines.append(f"    merged: {self.merged!r}")
        return "\n".join(lines)


@_dataclasses.dataclass(eq=True, frozen=True)
class Transform:
    name: str
    rank: int
    function: _typing.Callable
    default: bool = True

    def __call__(self, instruction_set):
        return run_transform(self, instruction_set)


class PipelineResult:
    def __init__(self, instruction_set, inconsistencies=()):
        self.instruction_set = instruction_set
        self.inconsistencies = list(inconsistencies)
        return super().__init__()

    def __repr__(self):
        return (f"{self.__class__.__name__}("
            f"instructions={len(self.instruction_set)}, "
            f"inconsistencies={len(self.inconsistencies)})")

    def __iter__(self):
        yield self.instruction_set
        yield self.inconsistencies

    @property
    def ok(self):
        return not self.inconsistencies


class Registry:
    def __init__(self, transforms):
        registry = {}
        for transform in transforms:
            if transform.name in registry:
                raise ValueError(
                    f"transform name {transform.name!r} is already used")
            registry[transform.name] = transform
        self.__registry = registry
        return super().__init__()

    def __iter__(self):
        yield from self.__registry.values()

    def __len__(self):
        return len(self.__registry)

    def __contains__(self, name):
        return self.__registry.__contains__(name)

    def __getitem__(self, name):
        return self.__registry.__getitem__(name)

    def pipeline(self):
        transforms = filter(lambda transform: transform.default, self)
        return tuple(sorted(transforms,
            key=lambda transform: (transform.rank, transform.name)))


def dump(instruction_set):
    for record in instruction_set:
        record = _dataclasses.asdict(record)
        yield from _pprint.pformat(record, width=79).splitlines()


def _inconsistencies(transform, inconsistencies):
    def named(inconsistency):
        if inconsistency.transform:
            return inconsistency
        return _dataclasses.replace(inconsistency, transform=transform.name)

    if inconsistencies is None:
        return []
    return list(map(named, inconsistencies))


def run_transform_with_diff(transform, instruction_set):
    """runs the transform and returns its inconsistencies together with
    a unified diff of the instruction set; the diff is empty if and only
    if the transform did not change anything.
    """
    before = tuple(dump(instruction_set))
    inconsistencies = transform.function(instruction_set)
    after = tuple(dump(instruction_set))
    diff = _difflib.unified_diff(before, after,
        fromfile=f"before {transform.name}",
        tofile=f"after {transform.name}",
        lineterm="")
    return (_inconsistencies(transform, inconsistencies), "\n".join(diff))


def run_transform(transform, instruction_set):
    log(f"Running: {transform.name}", kind=LogType.Transform)
    try:
        if silenced(LogType.TransformDiff):
            inconsistencies = transform.function(instruction_set)
            inconsistencies = _inconsistencies(transform, inconsistencies)
        else:
            (inconsistencies, diff) = run_transform_with_diff(
                transform, instruction_set)
            if diff:
                log(f"Difference:\n{diff}", kind=LogType.TransformDiff)
    except TransformError:
        log(f"Failed: {transform.name}", kind=LogType.Transform)
        raise
    for inconsistency in inconsistencies:
        log(inconsistency, kind=LogType.Transform)
    log(f"Success: {transform.name}", kind=LogType.Transform)
    return inconsistencies


def run_pipeline(pipeline, instruction_set):
    inconsistencies = []
    for transform in pipeline:
        inconsistencies.extend(run_transform(transform, instruction_set))
    if inconsistencies:
        log(f"{len(inconsistencies)} inconsistencies found",
            kind=LogType.Transform)
    return PipelineResult(instruction_set=instruction_set,
        inconsistencies=inconsistencies)
