"""Ordered union of the sample names declared by all inputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Sequence, Tuple

from .logging_utils import log_message


@dataclass(frozen=True)
class SampleRegistry:
    """Frozen, deduplicated sample names in first-encounter order."""

    names: Tuple[str, ...] = ()

    @classmethod
    def from_name_lists(cls, name_lists: Iterable[Sequence[str]]) -> "SampleRegistry":
        ordered: List[str] = []
        seen = set()
        for names in name_lists:
            for name in names:
                if name not in seen:
                    seen.add(name)
                    ordered.append(name)
        return cls(tuple(ordered))

    @classmethod
    def from_headers(cls, headers: Sequence[Tuple[str, object]], verbose: bool = False) -> "SampleRegistry":
        """Accumulate the samples of ``(path, vcfpy.Header)`` pairs in input order."""
        name_lists = []
        for path, header in headers:
            names = list(getattr(header.samples, "names", []) or [])
            log_message(f"file: {path} has {len(names)} samples", verbose)
            name_lists.append(names)
        registry = cls.from_name_lists(name_lists)
        log_message(f"Sample registry has {len(registry)} samples", verbose)
        return registry

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def index(self, name: str) -> int:
        return self.names.index(name)


__all__ = ["SampleRegistry"]
