"""Shared logging helpers and error types for the VCF munging workflow.

The ``vcf_munger`` logger is wired to the console when the module is
imported. :func:`configure_logging` is the idempotent entry point used by the
command-line tools to adjust verbosity, add a persistent log file or silence
the console; repeated invocations drop previously installed handlers so no
duplicate output accumulates.

Every fatal condition of a run is modelled by a subclass of
:class:`MungeVCFError`. :func:`handle_critical_error` logs such conditions at
``ERROR`` and ``CRITICAL`` level before raising, while
:func:`handle_non_critical_error` records recoverable conditions as warnings.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Iterable, Optional

LOG_FILE = "munge_vcf.log"
LOG_FORMAT = "%(asctime)s : %(levelname)s : %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("vcf_munger")
logger.propagate = False


def _normalize_level(level: int | str) -> int:
    """Return a numeric logging level for *level*."""
    if isinstance(level, str):
        name = level.upper()
        try:
            return logging._nameToLevel[name]  # type: ignore[attr-defined]
        except KeyError as exc:
            raise ValueError(f"Unknown log level: {level}") from exc
    return int(level)


def _clear_handlers(existing: Iterable[logging.Handler]) -> None:
    for h in list(existing):
        try:
            h.close()
        finally:
            logger.removeHandler(h)


def configure_logging(
    *,
    log_level: int | str = logging.INFO,
    log_file: str | os.PathLike[str] | None = None,
    enable_file_logging: bool = True,
    enable_console: bool = True,
    create_dirs: bool = True,
) -> None:
    """Idempotent logger setup for the VCF munger.

    A file handler is only installed when *log_file* is given and
    *enable_file_logging* is true.
    """
    level = _normalize_level(log_level)
    _clear_handlers(logger.handlers)
    logger.setLevel(level)

    fmt = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if enable_file_logging and log_file:
        path = os.fspath(log_file)
        if create_dirs:
            d = os.path.dirname(path)
            if d:
                os.makedirs(d, exist_ok=True)
        fh = logging.FileHandler(path)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    if enable_console:
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        logger.addHandler(sh)


class MungeVCFError(RuntimeError):
    """Base exception for unrecoverable errors in the munge workflow."""


class MissingDictionaryError(MungeVCFError):
    """Raised when no contig ordering is available from any source."""


class IncompatibleContigsError(MungeVCFError):
    """Raised when an input's contig declarations conflict with the ordering."""


class UnreadableInputError(MungeVCFError):
    """Raised when an input path cannot be opened or decoded."""


class UnwritableOutputError(MungeVCFError):
    """Raised when the output path cannot be written."""


class UnsortedInputError(MungeVCFError):
    """Raised when an input yields a record that sorts before its predecessor."""


class HeaderConflictError(MungeVCFError):
    """Raised when two headers declare the same field with irreconcilable types."""


def log_message(
    message: str,
    verbose: bool = False,
    level: int = logging.INFO,
    *,
    exc_info: BaseException | bool | None = None,
) -> None:
    """Log *message* at the requested level and optionally echo it to stdout."""

    logger.log(level, message, exc_info=exc_info)
    if verbose:
        print(message)


def handle_critical_error(
    message: str,
    exc_cls=None,
    *,
    exc_info: BaseException | bool | None = None,
) -> None:
    """Log and raise a fatal error."""

    log_message(message, level=logging.ERROR)
    logger.critical(message, exc_info=exc_info)
    exception_class = exc_cls or MungeVCFError
    if isinstance(exc_info, BaseException):
        raise exception_class(message) from exc_info
    raise exception_class(message)


def handle_non_critical_error(message: str) -> None:
    """Log a recoverable error as a warning."""

    log_message(message, level=logging.WARNING)


class ProgressLogger:
    """Emit a progress line every *interval* merged records."""

    def __init__(self, interval: int = 10000, noun: str = "records", verb: str = "Merged"):
        if interval <= 0:
            raise ValueError("interval must be a positive integer")
        self.interval = interval
        self.noun = noun
        self.verb = verb
        self.count = 0
        self._start = time.monotonic()
        self._last_locus: Optional[str] = None

    def record(self, contig: str, position: int) -> bool:
        """Count one record at *contig*:*position*; return True when a line was logged."""
        self.count += 1
        self._last_locus = f"{contig}:{position}"
        if self.count % self.interval:
            return False
        elapsed = time.monotonic() - self._start
        logger.info(
            "%s %d %s. Elapsed time: %.1fs. Last position: %s",
            self.verb,
            self.count,
            self.noun,
            elapsed,
            self._last_locus,
        )
        return True

    @property
    def last_locus(self) -> Optional[str]:
        return self._last_locus


__all__ = [
    "LOG_FILE",
    "configure_logging",
    "logger",
    "log_message",
    "handle_critical_error",
    "handle_non_critical_error",
    "ProgressLogger",
    "MungeVCFError",
    "MissingDictionaryError",
    "IncompatibleContigsError",
    "UnreadableInputError",
    "UnwritableOutputError",
    "UnsortedInputError",
    "HeaderConflictError",
]

# Default configuration: console only at INFO level.
configure_logging()
