"""Tests for the sample registry and first-wins genotype reconciliation."""

from vcf_helpers import make_record
from munge_vcf.genotypes import (
    MISSING_DIPLOID_GT,
    Missing,
    Present,
    lookup_genotype,
    merged_format_keys,
    reconcile_genotypes,
)
from munge_vcf.samples import SampleRegistry


def test_registry_keeps_first_encounter_order_and_deduplicates():
    registry = SampleRegistry.from_name_lists([["S2", "S1"], ["S3", "S1"], []])

    assert registry.names == ("S2", "S1", "S3")
    assert len(registry) == 3
    assert "S3" in registry
    assert registry.index("S1") == 1


def test_lookup_prefers_earliest_input():
    group = [
        (0, make_record("chr1", 100, calls=[("S1", {"GT": "0/1"})])),
        (1, make_record("chr1", 100, calls=[("S1", {"GT": "1/1"}), ("S2", {"GT": "0/0"})])),
    ]

    first = lookup_genotype("S1", group)
    second = lookup_genotype("S2", group)

    assert isinstance(first, Present)
    assert first.source_index == 0
    assert first.call.data["GT"] == "0/1"
    assert second.source_index == 1
    assert lookup_genotype("S9", group) == Missing("S9")


def test_reconcile_synthesises_missing_calls_in_registry_order():
    registry = SampleRegistry(("S2", "S1", "S3"))
    group = [(0, make_record("chr1", 100, calls=[("S1", {"GT": "0/1"})]))]

    format_keys, calls = reconcile_genotypes(group, registry)

    assert format_keys == ["GT"]
    assert [call.sample for call in calls] == ["S2", "S1", "S3"]
    assert calls[0].data["GT"] == MISSING_DIPLOID_GT
    assert calls[1].data["GT"] == "0/1"
    assert calls[2].data["GT"] == MISSING_DIPLOID_GT


def test_missing_call_is_diploid_no_call():
    registry = SampleRegistry(("S1",))
    group = [(0, make_record("chr1", 100, calls=[]))]

    _, calls = reconcile_genotypes(group, registry)

    assert calls[0].gt_alleles == [None, None]
    assert not calls[0].called


def test_reconcile_pads_format_keys_and_copies_calls():
    registry = SampleRegistry(("S1", "S2"))
    first = make_record("chr1", 5, calls=[("S1", {"GT": "0/1"})], format_keys=("GT",))
    second = make_record(
        "chr1", 5, calls=[("S2", {"GT": "1/1", "DP": 12})], format_keys=("GT", "DP")
    )

    format_keys, calls = reconcile_genotypes([(0, first), (1, second)], registry)

    assert format_keys == ["GT", "DP"]
    assert calls[0].data == {"GT": "0/1", "DP": None}
    assert calls[1].data == {"GT": "1/1", "DP": 12}
    assert calls[0] is not first.calls[0]
    assert first.calls[0].data == {"GT": "0/1"}


def test_format_keys_put_gt_first_and_add_it_for_missing_calls():
    record = make_record("chr1", 5, calls=[("S1", {"DP": 7, "GT": "0/1"})], format_keys=("DP", "GT"))
    no_gt = make_record("chr1", 5, calls=[("S1", {"DP": 7})], format_keys=("DP",))

    assert merged_format_keys([(0, record)], needs_gt=False) == ["GT", "DP"]
    assert merged_format_keys([(0, no_gt)], needs_gt=True) == ["GT", "DP"]
    assert merged_format_keys([(0, no_gt)], needs_gt=False) == ["DP"]


def test_empty_registry_produces_no_calls():
    group = [(0, make_record("chr1", 5, calls=[("S1", {"GT": "0/1"})]))]

    format_keys, calls = reconcile_genotypes(group, SampleRegistry())

    assert format_keys == []
    assert calls == []
