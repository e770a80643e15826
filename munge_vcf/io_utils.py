"""Path handling and the vcfpy/pysam reader and writer adapters."""

from __future__ import annotations

import os
from typing import Iterable, List, Sequence

from . import pysam, vcfpy
from .logging_utils import (
    UnreadableInputError,
    UnwritableOutputError,
    handle_critical_error,
    handle_non_critical_error,
    log_message,
)

LIST_SUFFIX = ".list"
READABLE_SUFFIXES = (".vcf", ".vcf.gz")
INDEXABLE_SUFFIXES = (".vcf.gz",)


def unroll_paths(paths: Iterable[str | os.PathLike[str]]) -> List[str]:
    """Expand every ``.list`` file in *paths* into the paths it lists.

    List files hold one path per line; blank lines and ``#`` comments are
    skipped, and list files may reference further list files.
    """
    unrolled: List[str] = []
    for entry in paths:
        path = os.fspath(entry)
        if not path.endswith(LIST_SUFFIX):
            unrolled.append(path)
            continue
        assert_readable(path)
        with open(path, "r", encoding="utf-8") as handle:
            listed = [
                line.strip()
                for line in handle
                if line.strip() and not line.lstrip().startswith("#")
            ]
        log_message(f"Expanded {path} into {len(listed)} path(s)")
        unrolled.extend(unroll_paths(listed))
    return unrolled


def assert_readable(path: str) -> None:
    if not os.path.exists(path):
        handle_critical_error(f"Input does not exist: {path}", exc_cls=UnreadableInputError)
    if os.path.isdir(path):
        handle_critical_error(f"Input is a directory, not a file: {path}", exc_cls=UnreadableInputError)
    if not os.access(path, os.R_OK):
        handle_critical_error(f"Input is not readable: {path}", exc_cls=UnreadableInputError)


def assert_writable(path: str) -> None:
    """Check that *path* can be created or overwritten."""
    if os.path.isdir(path):
        handle_critical_error(f"Output is a directory: {path}", exc_cls=UnwritableOutputError)
    if os.path.exists(path):
        if not os.access(path, os.W_OK):
            handle_critical_error(f"Output is not writable: {path}", exc_cls=UnwritableOutputError)
        return
    parent = os.path.dirname(os.path.abspath(path))
    if not os.path.isdir(parent):
        handle_critical_error(
            f"Output directory does not exist: {parent}", exc_cls=UnwritableOutputError
        )
    if not os.access(parent, os.W_OK):
        handle_critical_error(
            f"Output directory is not writable: {parent}", exc_cls=UnwritableOutputError
        )


def open_vcf_reader(path: str):
    """Open *path* with vcfpy; the header is parsed eagerly, records lazily."""
    assert_readable(path)
    if not path.lower().endswith(READABLE_SUFFIXES):
        handle_critical_error(
            f"Unsupported input format for {path}: expected a text VCF "
            f"({', '.join(READABLE_SUFFIXES)}).",
            exc_cls=UnreadableInputError,
        )
    try:
        return vcfpy.Reader.from_path(path)
    except (OSError, ValueError, vcfpy.exceptions.VCFPyException) as exc:
        handle_critical_error(
            f"Failed to open VCF input {path}: {exc}",
            exc_cls=UnreadableInputError,
            exc_info=exc,
        )


def open_vcf_writer(path: str, header):
    """Open a vcfpy writer; paths ending in ``.gz`` are written as BGZF."""
    try:
        return vcfpy.Writer.from_path(path, header=header)
    except OSError as exc:
        handle_critical_error(
            f"Failed to open output {path}: {exc}",
            exc_cls=UnwritableOutputError,
            exc_info=exc,
        )


def write_vcf(path: str, header, records: Iterable) -> int:
    """Write *header* and *records* to *path*; return the number of records."""
    count = 0
    writer = open_vcf_writer(path, header)
    try:
        for record in records:
            writer.write_record(record)
            count += 1
    finally:
        writer.close()
    return count


def is_indexable(path: str) -> bool:
    return path.lower().endswith(INDEXABLE_SUFFIXES)


def index_vcf(path: str, verbose: bool = False) -> str | None:
    """Create a tabix index beside a BGZF-compressed VCF.

    Returns the index path, or ``None`` when *path* is not block-compressed.
    """
    if not is_indexable(path):
        handle_non_critical_error(
            f"Index creation skipped for {path}: only BGZF-compressed (.vcf.gz) output can be indexed."
        )
        return None
    try:
        pysam.tabix_index(path, preset="vcf", force=True)
    except (OSError, ValueError) as exc:
        handle_critical_error(
            f"Failed to index {path}: {exc}", exc_cls=UnwritableOutputError, exc_info=exc
        )
    index_path = path + ".tbi"
    log_message(f"Indexed {path} -> {index_path}", verbose)
    return index_path


def remove_outputs(paths: Sequence[str]) -> None:
    """Delete partial outputs left behind by a failed run."""
    for path in paths:
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as exc:
            handle_non_critical_error(f"Could not remove partial output {path}: {exc}")


__all__ = [
    "LIST_SUFFIX",
    "unroll_paths",
    "assert_readable",
    "assert_writable",
    "open_vcf_reader",
    "open_vcf_writer",
    "write_vcf",
    "is_indexable",
    "index_vcf",
    "remove_outputs",
]
