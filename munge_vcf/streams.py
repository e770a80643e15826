"""Read cursors over the records of one input each."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple, Union

from . import vcfpy
from .dictionary import LocusComparator
from .logging_utils import UnreadableInputError, UnsortedInputError, handle_critical_error


@dataclass(frozen=True)
class Active:
    """Cursor state holding the buffered current record."""

    record: object


class Exhausted:
    """Cursor state of a stream with no records left."""

    def __repr__(self) -> str:
        return "EXHAUSTED"


EXHAUSTED = Exhausted()

CursorState = Union[Active, Exhausted]


class SourceStream:
    """Forward-only cursor with one record of lookahead.

    The stream checks that every record it buffers does not sort before the
    previous one; a violation raises :class:`UnsortedInputError` naming the
    source.
    """

    def __init__(
        self,
        index: int,
        source: str,
        records: Iterable,
        comparator: LocusComparator,
    ):
        self.index = index
        self.source = source
        self.comparator = comparator
        self._records: Iterator = iter(records)
        self._last_key: Optional[Tuple[int, int]] = None
        self.records_read = 0
        self.state: CursorState = EXHAUSTED
        self.advance()

    @property
    def is_exhausted(self) -> bool:
        return isinstance(self.state, Exhausted)

    @property
    def current(self):
        if isinstance(self.state, Active):
            return self.state.record
        raise LookupError(f"Stream {self.source} is exhausted")

    def advance(self) -> CursorState:
        """Drop the current record and buffer the next one."""
        try:
            record = next(self._records)
        except StopIteration:
            self.state = EXHAUSTED
            return self.state
        except (vcfpy.exceptions.VCFPyException, ValueError) as exc:
            handle_critical_error(
                f"Malformed record in {self.source} after record #{self.records_read}: {exc}",
                exc_cls=UnreadableInputError,
                exc_info=exc,
            )

        key = self.comparator.key(record)
        if self._last_key is not None and key < self._last_key:
            handle_critical_error(
                f"Input {self.source} is not sorted: record at {record.CHROM}:{record.POS} "
                f"follows a record at a later position (record #{self.records_read + 1}).",
                exc_cls=UnsortedInputError,
            )
        self._last_key = key
        self.records_read += 1
        self.state = Active(record)
        return self.state

    def __repr__(self) -> str:
        return f"SourceStream({self.index}, {self.source!r}, {self.state!r})"


__all__ = ["Active", "Exhausted", "EXHAUSTED", "CursorState", "SourceStream"]
