"""Multi-file VCF munging: merge sorted VCFs and reconcile their samples.

Importing the package verifies that the runtime dependencies :mod:`vcfpy`
(VCF parsing and writing) and :mod:`pysam` (sequence dictionaries and tabix
indexing) are available so that later operations can rely on them without
deferred import errors.
"""

from __future__ import annotations


def _import_dependency(name: str):
    try:
        module = __import__(name)
    except ImportError as exc:  # pragma: no cover - exercised when dependency missing
        raise ModuleNotFoundError(
            f"The '{name}' package is required for munge_vcf. "
            f"Please install it with 'pip install {name}'."
        ) from exc
    return module


vcfpy = _import_dependency("vcfpy")
pysam = _import_dependency("pysam")

from .logging_utils import (  # noqa: E402
    HeaderConflictError,
    IncompatibleContigsError,
    MissingDictionaryError,
    MungeVCFError,
    UnreadableInputError,
    UnsortedInputError,
    UnwritableOutputError,
)
from .dictionary import ContigDictionary, LocusComparator, resolve_dictionary  # noqa: E402
from .samples import SampleRegistry  # noqa: E402
from .merging import StreamMerger, munge_vcfs  # noqa: E402

__all__ = [
    "vcfpy",
    "pysam",
    "ContigDictionary",
    "LocusComparator",
    "SampleRegistry",
    "StreamMerger",
    "munge_vcfs",
    "resolve_dictionary",
    "MungeVCFError",
    "MissingDictionaryError",
    "IncompatibleContigsError",
    "UnreadableInputError",
    "UnwritableOutputError",
    "UnsortedInputError",
    "HeaderConflictError",
]
