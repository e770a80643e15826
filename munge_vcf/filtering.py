"""Hard filters that tag VCF records and genotypes with filter strings.

Variant filters inspect a whole record and return a FILTER string or ``None``;
genotype filters inspect one call of a record and return an ``FT`` string or
``None``. :func:`apply_filters` runs both chains lazily over a record stream
without dropping any record.
"""

from __future__ import annotations

import copy
from collections import OrderedDict
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from . import vcfpy
from .io_utils import (
    assert_writable,
    index_vcf,
    open_vcf_reader,
    remove_outputs,
    write_vcf,
)
from .logging_utils import (
    MungeVCFError,
    UnreadableInputError,
    handle_critical_error,
    log_message,
)

ALL_GTS_FILTERED = "AllGtsFiltered"
GENOTYPE_FILTER_KEY = "FT"

DEFAULT_MIN_AB = 0.3
DEFAULT_MIN_DP = 6
DEFAULT_MIN_GQ = 20
DEFAULT_MAX_FS = 13.0


def _first_value(value):
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _called_alleles(call) -> List[Optional[int]]:
    return list(getattr(call, "gt_alleles", None) or [])


def _is_no_call(call) -> bool:
    alleles = _called_alleles(call)
    return not alleles or any(allele is None for allele in alleles)


def _is_het(call) -> bool:
    alleles = _called_alleles(call)
    return not _is_no_call(call) and len(set(alleles)) > 1


def _is_hom_ref(call) -> bool:
    alleles = _called_alleles(call)
    return not _is_no_call(call) and all(allele == 0 for allele in alleles)


def _is_snv(record) -> bool:
    if len(record.REF) != 1:
        return False
    return all(len(getattr(alt, "value", "")) == 1 for alt in record.ALT or [])


class VariantFilter:
    """Interface for site-level filters."""

    def header_lines(self) -> list:
        return []

    def filter(self, record) -> Optional[str]:
        raise NotImplementedError


class GenotypeFilter:
    """Interface for per-call filters."""

    def filter(self, record, call) -> Optional[str]:
        raise NotImplementedError


class AlleleBalanceFilter(VariantFilter):
    """Flag sites whose heterozygote allele balance falls below *min_ab*.

    Heterozygous calls are pooled per genotype (e.g. all ``0/1`` calls
    together) and the balance is the share of AD supporting the weaker of the
    two alleles. The site is flagged if any pool is below the limit.
    """

    name = "AlleleBalance"

    def __init__(self, min_ab: float = DEFAULT_MIN_AB):
        self.min_ab = min_ab

    def header_lines(self) -> list:
        return [
            vcfpy.header.FilterHeaderLine.from_mapping(
                {"ID": self.name, "Description": "Heterozygote allele balance below required threshold."}
            )
        ]

    def filter(self, record) -> Optional[str]:
        counts: Dict[Tuple[int, ...], List[int]] = {}
        for call in record.calls or []:
            if not _is_het(call):
                continue
            depths = call.data.get("AD")
            if not isinstance(depths, (list, tuple)):
                continue
            alleles = tuple(_called_alleles(call)[:2])
            if max(alleles) >= len(depths):
                continue
            pooled = counts.setdefault(alleles, [0, 0])
            pooled[0] += depths[alleles[0]] or 0
            pooled[1] += depths[alleles[1]] or 0

        for first, second in counts.values():
            total = first + second
            if total > 0 and min(first, second) / total < self.min_ab:
                return self.name
        return None


class FisherStrandFilter(VariantFilter):
    """Flag sites whose phred-scaled Fisher strand value (INFO/FS) exceeds *max_fs*."""

    name = "StrandBias"

    def __init__(self, max_fs: float = DEFAULT_MAX_FS):
        self.max_fs = max_fs

    def header_lines(self) -> list:
        return [
            vcfpy.header.FilterHeaderLine.from_mapping(
                {"ID": self.name, "Description": "Site exhibits excessive allele/strand correlation."}
            )
        ]

    def filter(self, record) -> Optional[str]:
        fs = _first_value(record.INFO.get("FS"))
        if fs is None:
            return None
        return self.name if float(fs) > self.max_fs else None


class GenotypeQualityFilter(GenotypeFilter):
    name = "LowGQ"

    def __init__(self, min_gq: int = DEFAULT_MIN_GQ):
        self.min_gq = min_gq

    def filter(self, record, call) -> Optional[str]:
        gq = _first_value(call.data.get("GQ"))
        if gq is None:
            return None
        return self.name if gq < self.min_gq else None


class DepthFilter(GenotypeFilter):
    """Flag non hom-ref calls whose DP is below the threshold for their class.

    No-calls count as non hom-ref and a missing DP counts as below any
    threshold, so both are flagged.
    """

    name = "LowDP"

    def __init__(self, min_het_snp: int, min_hom_snp: int, min_het_indel: int, min_hom_indel: int):
        self.min_het_snp = min_het_snp
        self.min_hom_snp = min_hom_snp
        self.min_het_indel = min_het_indel
        self.min_hom_indel = min_hom_indel

    @classmethod
    def uniform(cls, min_dp: int = DEFAULT_MIN_DP) -> "DepthFilter":
        return cls(min_dp, min_dp, min_dp, min_dp)

    def filter(self, record, call) -> Optional[str]:
        if _is_hom_ref(call):
            return None
        dp = _first_value(call.data.get("DP"))
        if dp is None:
            dp = -1
        if _is_snv(record):
            minimum = self.min_het_snp if _is_het(call) else self.min_hom_snp
        else:
            minimum = self.min_het_indel if _is_het(call) else self.min_hom_indel
        return self.name if dp < minimum else None


def filter_record(
    record,
    variant_filters: Sequence[VariantFilter],
    genotype_filters: Sequence[GenotypeFilter],
):
    """Return *record*, or a filtered copy when any filter fires."""
    site_filters: List[str] = []
    for variant_filter in variant_filters:
        value = variant_filter.filter(record)
        if value and value not in site_filters:
            site_filters.append(value)

    call_filters: "OrderedDict[str, List[str]]" = OrderedDict()
    for call in record.calls or []:
        for genotype_filter in genotype_filters:
            value = genotype_filter.filter(record, call)
            if value:
                call_filters.setdefault(call.sample, []).append(value)

    if not site_filters and not call_filters:
        return record

    filtered = copy.deepcopy(record)
    if call_filters:
        if GENOTYPE_FILTER_KEY not in filtered.FORMAT:
            filtered.FORMAT = list(filtered.FORMAT) + [GENOTYPE_FILTER_KEY]
        calls = []
        for call in filtered.calls:
            data = dict(call.data)
            data[GENOTYPE_FILTER_KEY] = call_filters.get(call.sample, ["PASS"])
            calls.append(vcfpy.Call(call.sample, data))
        filtered.update_calls(calls)
        if len(call_filters) == len(record.calls):
            site_filters.append(ALL_GTS_FILTERED)

    if site_filters:
        existing = [f for f in filtered.FILTER or [] if f != "PASS"]
        filtered.FILTER = existing + [f for f in site_filters if f not in existing]
    return filtered


def apply_filters(
    records: Iterable,
    variant_filters: Sequence[VariantFilter],
    genotype_filters: Sequence[GenotypeFilter],
) -> Iterator:
    """Lazily yield every record of *records* with filter strings applied."""
    for record in records:
        yield filter_record(record, variant_filters, genotype_filters)


def add_filter_header_lines(header, variant_filters: Sequence[VariantFilter]):
    """Return a copy of *header* declaring the FILTER and FORMAT/FT lines in use."""
    updated = header.copy()
    lines = [
        vcfpy.header.FilterHeaderLine.from_mapping(
            {"ID": ALL_GTS_FILTERED, "Description": "Site filtered out because all genotypes are filtered out."}
        ),
        vcfpy.header.FormatHeaderLine.from_mapping(
            {"ID": GENOTYPE_FILTER_KEY, "Number": ".", "Type": "String", "Description": "Genotype filters."}
        ),
    ]
    for variant_filter in variant_filters:
        lines.extend(variant_filter.header_lines())
    for line in lines:
        if not updated.has_header_line(line.key, line.id):
            updated.add_line(line)
    return updated


def filter_vcf(
    input_path: str,
    output_path: str,
    *,
    min_ab: float = DEFAULT_MIN_AB,
    min_dp: int = DEFAULT_MIN_DP,
    min_gq: int = DEFAULT_MIN_GQ,
    max_fs: float = DEFAULT_MAX_FS,
    create_index: bool = True,
    verbose: bool = False,
) -> str:
    """Apply the standard hard-filter chain to *input_path*."""
    assert_writable(output_path)
    variant_filters = [AlleleBalanceFilter(min_ab), FisherStrandFilter(max_fs)]
    genotype_filters = [GenotypeQualityFilter(min_gq), DepthFilter.uniform(min_dp)]

    reader = open_vcf_reader(input_path)
    try:
        header = add_filter_header_lines(reader.header, variant_filters)
        written = write_vcf(
            output_path, header, apply_filters(reader, variant_filters, genotype_filters)
        )
    except MungeVCFError:
        remove_outputs([output_path])
        raise
    except (vcfpy.exceptions.VCFPyException, ValueError) as exc:
        remove_outputs([output_path])
        handle_critical_error(
            f"Failed to filter {input_path}: {exc}",
            exc_cls=UnreadableInputError,
            exc_info=exc,
        )
    finally:
        reader.close()
    log_message(f"Filtered {written} record(s) from {input_path} into {output_path}", verbose)

    if create_index:
        index_vcf(output_path, verbose)
    return output_path


__all__ = [
    "ALL_GTS_FILTERED",
    "VariantFilter",
    "GenotypeFilter",
    "AlleleBalanceFilter",
    "FisherStrandFilter",
    "GenotypeQualityFilter",
    "DepthFilter",
    "filter_record",
    "apply_filters",
    "add_filter_header_lines",
    "filter_vcf",
]
