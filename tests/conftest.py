"""Shared pytest fixtures for the munge_vcf test suite."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from vcf_helpers import vcf_text  # noqa: E402


@pytest.fixture
def write_vcf(tmp_path):
    """Write a small VCF under ``tmp_path`` and return its path as a string."""

    def _write(name, contigs, samples, rows, extra_header=()):
        path = tmp_path / name
        path.write_text(vcf_text(contigs, samples, rows, extra_header), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture(autouse=True)
def propagate_munge_logs(monkeypatch):
    """Let ``caplog`` see records from the non-propagating ``vcf_munger`` logger."""
    from munge_vcf.logging_utils import logger

    monkeypatch.setattr(logger, "propagate", True)
    yield logger
