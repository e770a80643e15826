"""First-wins reconciliation of per-sample genotypes at one locus."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from . import vcfpy
from .samples import SampleRegistry

MISSING_DIPLOID_GT = "./."


@dataclass(frozen=True)
class Present:
    """A call found in the record of the input at *source_index*."""

    call: object
    source_index: int


@dataclass(frozen=True)
class Missing:
    """No grouped record carries the sample."""

    sample: str


GenotypeLookup = Union[Present, Missing]


def lookup_genotype(sample: str, group: Sequence[Tuple[int, object]]) -> GenotypeLookup:
    """Return the call of *sample* from the first record of *group* that has it.

    *group* holds ``(source_index, vcfpy.Record)`` pairs in input order.
    """
    for source_index, record in group:
        call = record.call_for_sample.get(sample)
        if call is not None:
            return Present(call, source_index)
    return Missing(sample)


def merged_format_keys(group: Sequence[Tuple[int, object]], needs_gt: bool) -> List[str]:
    """Union the FORMAT keys of *group* in encounter order with ``GT`` first."""
    keys: List[str] = []
    for _, record in group:
        for key in record.FORMAT or []:
            if key not in keys:
                keys.append(key)
    if "GT" in keys and keys[0] != "GT":
        keys.remove("GT")
        keys.insert(0, "GT")
    elif "GT" not in keys and needs_gt:
        keys.insert(0, "GT")
    return keys


def missing_call(sample: str, format_keys: Sequence[str]):
    """Build the diploid no-call used for samples absent from a locus."""
    data = {key: None for key in format_keys}
    data["GT"] = MISSING_DIPLOID_GT
    return vcfpy.Call(sample, data)


def _copy_call(call, format_keys: Sequence[str]):
    data = {key: call.data.get(key) for key in format_keys}
    for key, value in call.data.items():
        data.setdefault(key, value)
    return vcfpy.Call(call.sample, data)


def reconcile_genotypes(
    group: Sequence[Tuple[int, object]],
    registry: SampleRegistry,
) -> Tuple[List[str], List[object]]:
    """Return ``(format_keys, calls)`` with one call per registry sample.

    Calls are copies; the records of *group* are left untouched.
    """
    lookups = [lookup_genotype(sample, group) for sample in registry]
    needs_gt = any(isinstance(lookup, Missing) for lookup in lookups)
    format_keys = merged_format_keys(group, needs_gt) if registry.names else []

    calls = []
    for lookup in lookups:
        if isinstance(lookup, Present):
            calls.append(_copy_call(lookup.call, format_keys))
        else:
            calls.append(missing_call(lookup.sample, format_keys))
    return format_keys, calls


__all__ = [
    "MISSING_DIPLOID_GT",
    "Present",
    "Missing",
    "GenotypeLookup",
    "lookup_genotype",
    "merged_format_keys",
    "missing_call",
    "reconcile_genotypes",
]
