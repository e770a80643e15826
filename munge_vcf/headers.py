"""Reconcile the headers of all inputs into the header of the merged file."""

from __future__ import annotations

import copy
import os
from collections import OrderedDict
from typing import Iterable, List, Optional, Sequence, Tuple

from . import vcfpy
from .dictionary import ContigDictionary, contig_lines, declared_contig_names
from .logging_utils import (
    HeaderConflictError,
    IncompatibleContigsError,
    handle_critical_error,
    handle_non_critical_error,
    log_message,
)

COMMENT_KEY = "munge_vcf.comment"
DEFAULT_FILEFORMAT = "VCFv4.2"

_COMPOUND_LINE_TYPES = (vcfpy.header.InfoHeaderLine, vcfpy.header.FormatHeaderLine)


def _line_mapping(line) -> dict:
    """Helper to get a plain mapping of a header line's metadata (ID, Number, Type, ...)."""
    mapping = getattr(line, "mapping", None)
    return dict(mapping) if isinstance(mapping, dict) else {}


def _line_id(line) -> Optional[str]:
    identifier = getattr(line, "id", None)
    if identifier is None:
        identifier = _line_mapping(line).get("ID")
    return identifier


def annotate_header(header, dictionary: ContigDictionary):
    """Return *header*, or a copy carrying *dictionary*'s contigs when it has none."""
    if contig_lines(header):
        return header
    annotated = header.copy()
    for line in dictionary.header_lines():
        annotated.add_line(line)
    return annotated


def check_contig_compatibility(path: str, header, dictionary: ContigDictionary) -> None:
    """Raise :class:`IncompatibleContigsError` if *header* disagrees with *dictionary*."""
    names = declared_contig_names(header)
    if names and not dictionary.is_compatible(names):
        handle_critical_error(
            f"The contig entries in input path {os.path.abspath(path)} "
            "are not compatible with the others.",
            exc_cls=IncompatibleContigsError,
        )


def _promote_compound_line(existing, incoming, path: str):
    """Return the definition to keep when two INFO/FORMAT lines share an ID."""
    exist_map, new_map = _line_mapping(existing), _line_mapping(incoming)
    key = existing.key
    ident = _line_id(existing)
    exist_type, new_type = exist_map.get("Type"), new_map.get("Type")
    exist_number, new_number = exist_map.get("Number"), new_map.get("Number")
    kept = existing

    if exist_type != new_type:
        if {exist_type, new_type} != {"Integer", "Float"}:
            handle_critical_error(
                f"{key} header definitions conflict across inputs. "
                f"Field 'Type' for {key} '{ident}' differs: "
                f"{exist_type!r} vs {new_type!r} (in {path}).",
                exc_cls=HeaderConflictError,
            )
        handle_non_critical_error(
            f"Promoting {key} '{ident}' from Integer to Float (conflicting definition in {path})."
        )
        if new_type == "Float":
            kept = incoming

    if str(exist_number) != str(new_number):
        handle_non_critical_error(
            f"Promoting Number of {key} '{ident}' to '.' "
            f"({exist_number!r} vs {new_number!r} in {path})."
        )
        mapping = _line_mapping(kept)
        mapping["Number"] = "."
        kept = type(kept).from_mapping(mapping)

    if exist_map.get("Description") != new_map.get("Description"):
        kept_description = _line_mapping(kept).get("Description")
        dropped_description = (
            exist_map.get("Description")
            if kept_description == new_map.get("Description")
            else new_map.get("Description")
        )
        handle_non_critical_error(
            f"Allowing unequal Description for {key} '{ident}' through: keeping "
            f"{kept_description!r}, dropping {dropped_description!r} ({path})."
        )
    return kept


def smart_merge_lines(headers: Sequence[Tuple[str, object]]) -> List[object]:
    """Union the non-contig metadata lines of *headers*, duplicate-safe.

    ``fileformat`` is taken from the first header; INFO/FORMAT collisions are
    resolved by :func:`_promote_compound_line`; other ID-bearing lines keep
    their first definition and plain lines are deduplicated on key and value.
    """
    fileformat = None
    merged: "OrderedDict[tuple, object]" = OrderedDict()

    for path, header in headers:
        for line in getattr(header, "lines", []):
            key = getattr(line, "key", None)
            if isinstance(line, vcfpy.header.ContigHeaderLine):
                continue
            if key == "fileformat":
                if fileformat is None:
                    fileformat = copy.deepcopy(line)
                continue

            ident = _line_id(line) if hasattr(line, "mapping") else None
            slot = (key, ident) if ident is not None else (key, getattr(line, "value", None))
            existing = merged.get(slot)
            if existing is None:
                merged[slot] = copy.deepcopy(line)
                continue

            if isinstance(line, _COMPOUND_LINE_TYPES):
                merged[slot] = _promote_compound_line(existing, line, str(path))
            elif ident is not None and _line_mapping(existing) != _line_mapping(line):
                handle_non_critical_error(
                    f"Ignoring differing duplicate {key} '{ident}' declaration in {path}; "
                    "keeping the first definition."
                )

    if fileformat is None:
        fileformat = vcfpy.header.HeaderLine("fileformat", DEFAULT_FILEFORMAT)
    return [fileformat] + list(merged.values())


def reconcile_headers(
    headers: Sequence[Tuple[str, object]],
    dictionary: ContigDictionary,
    sample_names: Iterable[str] = (),
    comments: Iterable[str] = (),
):
    """Validate every input header and build the merged output header.

    *headers* is a sequence of ``(path, vcfpy.Header)`` pairs in input order.
    All contig checks run before any line is merged so that an incompatible
    input aborts the run before any output is produced.
    """
    annotated: List[Tuple[str, object]] = []
    for path, header in headers:
        check_contig_compatibility(path, header, dictionary)
        annotated.append((path, annotate_header(header, dictionary)))

    lines = smart_merge_lines(annotated)
    lines.extend(dictionary.header_lines())
    for comment in comments:
        if comment:
            lines.append(vcfpy.header.HeaderLine(COMMENT_KEY, comment))

    merged = vcfpy.header.Header(lines=lines, samples=vcfpy.header.SamplesInfos(list(sample_names)))
    log_message(
        f"Merged header built from {len(annotated)} input(s) with "
        f"{len(lines)} metadata line(s) and {len(dictionary)} contig(s)"
    )
    return merged


__all__ = [
    "COMMENT_KEY",
    "annotate_header",
    "check_contig_compatibility",
    "smart_merge_lines",
    "reconcile_headers",
]
