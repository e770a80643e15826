"""Synchronised merge of sorted VCF streams and the end-to-end munge workflow."""

from __future__ import annotations

import copy
import logging
import os
from contextlib import ExitStack
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from . import vcfpy
from .dictionary import LocusComparator, load_sequence_dictionary, resolve_dictionary
from .genotypes import reconcile_genotypes
from .headers import reconcile_headers
from .io_utils import (
    assert_writable,
    index_vcf,
    open_vcf_reader,
    remove_outputs,
    unroll_paths,
    write_vcf,
)
from .logging_utils import (
    MungeVCFError,
    ProgressLogger,
    UnreadableInputError,
    handle_critical_error,
    log_message,
)
from .samples import SampleRegistry
from .streams import SourceStream

DEFAULT_PROGRESS_INTERVAL = 10000


def build_merged_record(template, group: Sequence[Tuple[int, object]], registry: SampleRegistry):
    """Copy the site-level fields of *template* and attach reconciled calls."""
    format_keys, calls = reconcile_genotypes(group, registry)
    return vcfpy.Record(
        CHROM=template.CHROM,
        POS=template.POS,
        ID=list(template.ID or []),
        REF=template.REF,
        ALT=list(template.ALT or []),
        QUAL=template.QUAL,
        FILTER=list(template.FILTER or []),
        INFO=copy.copy(template.INFO),
        FORMAT=format_keys,
        calls=calls,
    )


class StreamMerger:
    """Merge sorted source streams into one sorted sequence of records.

    Each iteration picks the minimal current record by linear scan, groups
    every stream positioned at the same locus, emits one merged record and
    advances the consumed streams. Iteration stops once every stream is
    exhausted.
    """

    def __init__(
        self,
        streams: Sequence[SourceStream],
        registry: SampleRegistry,
        comparator: LocusComparator,
    ):
        self.streams = list(streams)
        self.registry = registry
        self.comparator = comparator
        self.emitted = 0

    @property
    def done(self) -> bool:
        return all(stream.is_exhausted for stream in self.streams)

    def _active_streams(self) -> List[SourceStream]:
        return [stream for stream in self.streams if not stream.is_exhausted]

    def select_minimal(self) -> SourceStream:
        """Return the earliest-ordered stream holding the smallest current record."""
        minimal: Optional[SourceStream] = None
        for stream in self._active_streams():
            if minimal is None or self.comparator.compare(stream.current, minimal.current) < 0:
                minimal = stream
        if minimal is None:
            raise LookupError("All source streams are exhausted")
        return minimal

    def group_at(self, record) -> List[Tuple[int, object]]:
        """Return ``(index, record)`` of every stream positioned at *record*'s locus."""
        return [
            (stream.index, stream.current)
            for stream in self._active_streams()
            if self.comparator.compare(stream.current, record) == 0
        ]

    def _advance_consumed(self, record) -> None:
        for stream in self._active_streams():
            if self.comparator.compare(stream.current, record) <= 0:
                stream.advance()

    def __iter__(self) -> Iterator:
        return self

    def __next__(self):
        if self.done:
            raise StopIteration
        minimal = self.select_minimal().current
        group = self.group_at(minimal)
        merged = build_merged_record(minimal, group, self.registry)
        self._advance_consumed(minimal)
        self.emitted += 1
        return merged


def _track_progress(records: Iterable, progress: ProgressLogger) -> Iterator:
    for record in records:
        progress.record(record.CHROM, record.POS)
        yield record


def munge_vcfs(
    input_paths: Sequence[str],
    output_path: str,
    *,
    sequence_dictionary: Optional[str] = None,
    comments: Sequence[str] = (),
    create_index: bool = True,
    verbose: bool = False,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> str:
    """Merge *input_paths* into *output_path* and return the output path.

    Inputs may include ``.list`` files. Every header is read and checked
    before the first record is merged; on any failure partial output is
    removed and the :class:`MungeVCFError` propagates.
    """
    paths = unroll_paths(input_paths)
    if not paths:
        handle_critical_error("No input VCF files specified.")
    output_path = os.fspath(output_path)
    assert_writable(output_path)

    override = load_sequence_dictionary(sequence_dictionary) if sequence_dictionary else None

    partial_outputs = [output_path, output_path + ".tbi"]
    with ExitStack() as stack:
        readers = []
        for path in paths:
            reader = open_vcf_reader(path)
            stack.callback(reader.close)
            readers.append((path, reader))
        log_message(f"Opened {len(readers)} input VCF file(s)", verbose)

        headers = [(path, reader.header) for path, reader in readers]
        dictionary = resolve_dictionary(override, headers)
        comparator = LocusComparator(dictionary)
        registry = SampleRegistry.from_headers(headers, verbose=verbose)
        merged_header = reconcile_headers(
            headers, dictionary, sample_names=registry.names, comments=comments
        )

        streams = [
            SourceStream(idx, path, reader, comparator)
            for idx, (path, reader) in enumerate(readers)
        ]
        merger = StreamMerger(streams, registry, comparator)
        progress = ProgressLogger(progress_interval)

        try:
            written = write_vcf(output_path, merged_header, _track_progress(merger, progress))
        except MungeVCFError:
            remove_outputs(partial_outputs)
            raise
        except vcfpy.exceptions.VCFPyException as exc:
            remove_outputs(partial_outputs)
            handle_critical_error(
                f"Failed to merge records into {output_path}: {exc}",
                exc_cls=UnreadableInputError,
                exc_info=exc,
            )
        except (OSError, ValueError) as exc:
            remove_outputs(partial_outputs)
            handle_critical_error(
                f"Failed to write merged VCF {output_path}: {exc}", exc_info=exc
            )

    log_message(
        f"Merged {sum(stream.records_read for stream in streams)} input record(s) "
        f"into {written} output record(s) for {len(registry)} sample(s)",
        verbose,
    )

    if create_index:
        try:
            index_vcf(output_path, verbose)
        except MungeVCFError:
            remove_outputs(partial_outputs)
            raise

    log_message(f"Merged VCF written: {output_path}", verbose, level=logging.INFO)
    return output_path


__all__ = [
    "DEFAULT_PROGRESS_INTERVAL",
    "build_merged_record",
    "StreamMerger",
    "munge_vcfs",
]
