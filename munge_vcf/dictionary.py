"""Contig dictionaries and the locus ordering derived from them."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import pysam, vcfpy
from .logging_utils import (
    IncompatibleContigsError,
    MissingDictionaryError,
    UnreadableInputError,
    handle_critical_error,
    log_message,
)

SEQ_DICT_REQUIRED = (
    "A sequence dictionary must be available "
    "(either through the input file or by setting it explicitly)."
)

_SAM_DICTIONARY_SUFFIXES = (".dict", ".sam", ".bam", ".cram")
_VCF_DICTIONARY_SUFFIXES = (".vcf", ".vcf.gz")


@dataclass(frozen=True)
class Contig:
    """A named reference sequence as declared by a header or dictionary file."""

    name: str
    length: Optional[int] = None
    attributes: Tuple[Tuple[str, str], ...] = ()

    def to_header_line(self):
        mapping: Dict[str, object] = {"ID": self.name}
        if self.length is not None:
            mapping["length"] = self.length
        for key, value in self.attributes:
            mapping.setdefault(key, value)
        return vcfpy.header.ContigHeaderLine.from_mapping(mapping)


@dataclass(frozen=True)
class ContigDictionary:
    """Immutable, ordered list of contigs; the index of a contig is its rank."""

    contigs: Tuple[Contig, ...]
    source: str = ""
    _ranks: Mapping[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(
            self, "_ranks", {contig.name: idx for idx, contig in enumerate(self.contigs)}
        )

    @classmethod
    def from_names(cls, names: Iterable[str], source: str = "") -> "ContigDictionary":
        return cls(tuple(Contig(name) for name in names), source=source)

    @classmethod
    def from_header(cls, header, source: str = "") -> Optional["ContigDictionary"]:
        """Build a dictionary from the ``##contig`` lines of a vcfpy header.

        Returns ``None`` when the header declares no contigs.
        """
        contigs = [_contig_from_line(line) for line in contig_lines(header)]
        if not contigs:
            return None
        return cls(tuple(contigs), source=source)

    @property
    def names(self) -> List[str]:
        return [contig.name for contig in self.contigs]

    def __len__(self) -> int:
        return len(self.contigs)

    def __contains__(self, name: object) -> bool:
        return name in self._ranks

    def rank(self, name: str) -> int:
        """Return the 0-based rank of contig *name*; ``KeyError`` if unknown."""
        return self._ranks[name]

    def get_rank(self, name: str) -> Optional[int]:
        return self._ranks.get(name)

    def header_lines(self) -> list:
        return [contig.to_header_line() for contig in self.contigs]

    def is_compatible(self, names: Sequence[str]) -> bool:
        """Return True when every contig in *names* has the same rank here.

        The declaring list may be a prefix of the dictionary, but it may not
        rename, reorder or introduce contigs.
        """
        for idx, name in enumerate(names):
            if self._ranks.get(name) != idx:
                return False
        return True


class LocusComparator:
    """Order records by ``(contig rank, position)``.

    Records at the same contig and position compare equal whatever their
    alleles, which makes the comparator the grouping key of the merge.
    """

    def __init__(self, dictionary: ContigDictionary):
        self.dictionary = dictionary

    def key(self, record) -> Tuple[int, int]:
        rank = self.dictionary.get_rank(record.CHROM)
        if rank is None:
            handle_critical_error(
                f"Record at {record.CHROM}:{record.POS} uses a contig that is not "
                f"present in the sequence dictionary ({self.dictionary.source or 'unknown source'}).",
                exc_cls=IncompatibleContigsError,
            )
        return rank, int(record.POS)

    def compare(self, left, right) -> int:
        """Return a negative, zero or positive number like ``cmp``."""
        left_key = self.key(left)
        right_key = self.key(right)
        if left_key < right_key:
            return -1
        if left_key > right_key:
            return 1
        return 0


def contig_lines(header) -> list:
    """Return the ``##contig`` header lines of *header* in declaration order."""
    if header is None:
        return []
    return [
        line
        for line in getattr(header, "lines", [])
        if isinstance(line, vcfpy.header.ContigHeaderLine)
    ]


def declared_contig_names(header) -> List[str]:
    return [line.id for line in contig_lines(header)]


def _contig_from_line(line) -> Contig:
    mapping = dict(getattr(line, "mapping", {}) or {})
    length = getattr(line, "length", None)
    if length is None:
        length = mapping.get("length")
    attributes = tuple(
        (str(key), str(value))
        for key, value in mapping.items()
        if key not in {"ID", "length"} and value is not None
    )
    return Contig(
        name=line.id,
        length=int(length) if length not in {None, ""} else None,
        attributes=attributes,
    )


def _load_sam_dictionary(path: str) -> List[Contig]:
    with pysam.AlignmentFile(path, "r") as handle:
        return [
            Contig(name, int(length))
            for name, length in zip(handle.references, handle.lengths)
        ]


def _load_vcf_dictionary(path: str) -> List[Contig]:
    with vcfpy.Reader.from_path(path) as reader:
        return [_contig_from_line(line) for line in contig_lines(reader.header)]


def load_sequence_dictionary(path: str | os.PathLike[str]) -> ContigDictionary:
    """Load an explicit sequence dictionary from *path*.

    SAM-style files (``.dict``, ``.sam``, ``.bam``, ``.cram``) are read with
    pysam; VCF files contribute their ``##contig`` declarations.
    """
    path = os.fspath(path)
    if not os.path.isfile(path) or not os.access(path, os.R_OK):
        handle_critical_error(
            f"Sequence dictionary is not readable: {path}", exc_cls=UnreadableInputError
        )

    lower = path.lower()
    try:
        if lower.endswith(_VCF_DICTIONARY_SUFFIXES):
            contigs = _load_vcf_dictionary(path)
        elif lower.endswith(_SAM_DICTIONARY_SUFFIXES):
            contigs = _load_sam_dictionary(path)
        else:
            handle_critical_error(
                f"Unsupported sequence dictionary format: {path}. Expected one of "
                f"{', '.join(_SAM_DICTIONARY_SUFFIXES + _VCF_DICTIONARY_SUFFIXES)}.",
                exc_cls=UnreadableInputError,
            )
    except (OSError, ValueError) as exc:
        handle_critical_error(
            f"Failed to read sequence dictionary {path}: {exc}",
            exc_cls=UnreadableInputError,
            exc_info=exc,
        )

    if not contigs:
        handle_critical_error(
            f"Sequence dictionary {path} does not declare any contigs. {SEQ_DICT_REQUIRED}",
            exc_cls=MissingDictionaryError,
        )
    log_message(f"Loaded sequence dictionary with {len(contigs)} contigs from {path}")
    return ContigDictionary(tuple(contigs), source=path)


def resolve_dictionary(
    override: Optional[ContigDictionary],
    headers: Sequence[Tuple[str, object]],
) -> ContigDictionary:
    """Pick the contig ordering for the run.

    *headers* is a sequence of ``(path, vcfpy.Header)`` pairs in input order.
    An explicit *override* wins; otherwise the first header that declares
    contigs is used.
    """
    if override is not None:
        return override
    for path, header in headers:
        dictionary = ContigDictionary.from_header(header, source=str(path))
        if dictionary is not None:
            log_message(f"Using the contig declarations of {path} as sequence dictionary")
            return dictionary
    handle_critical_error(SEQ_DICT_REQUIRED, exc_cls=MissingDictionaryError)


__all__ = [
    "SEQ_DICT_REQUIRED",
    "Contig",
    "ContigDictionary",
    "LocusComparator",
    "contig_lines",
    "declared_contig_names",
    "load_sequence_dictionary",
    "resolve_dictionary",
]
