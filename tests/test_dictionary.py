"""Tests for contig dictionaries, the locus comparator and dictionary resolution."""

import pytest

from vcf_helpers import make_record, vcf_text
from munge_vcf.dictionary import (
    ContigDictionary,
    LocusComparator,
    load_sequence_dictionary,
    resolve_dictionary,
)
from munge_vcf.logging_utils import (
    IncompatibleContigsError,
    MissingDictionaryError,
    UnreadableInputError,
)
from munge_vcf.io_utils import open_vcf_reader


def _header(tmp_path, name, contigs, samples=("S1",)):
    path = tmp_path / name
    path.write_text(vcf_text(contigs, samples, []), encoding="utf-8")
    reader = open_vcf_reader(str(path))
    reader.close()
    return str(path), reader.header


def test_rank_follows_declaration_order():
    dictionary = ContigDictionary.from_names(["chr2", "chr1", "chrX"])

    assert dictionary.rank("chr2") == 0
    assert dictionary.rank("chrX") == 2
    assert "chr1" in dictionary
    assert dictionary.get_rank("chrM") is None


def test_compatibility_requires_same_rank_for_each_declared_contig():
    dictionary = ContigDictionary.from_names(["chr1", "chr2", "chr3"])

    assert dictionary.is_compatible(["chr1", "chr2", "chr3"])
    assert dictionary.is_compatible(["chr1", "chr2"])
    assert not dictionary.is_compatible(["chr2", "chr1"])
    assert not dictionary.is_compatible(["chr1", "chrUn"])


def test_comparator_orders_by_rank_then_position():
    comparator = LocusComparator(ContigDictionary.from_names(["chr2", "chr1"]))

    assert comparator.compare(make_record("chr2", 500), make_record("chr1", 1)) < 0
    assert comparator.compare(make_record("chr1", 20), make_record("chr1", 10)) > 0


def test_comparator_ignores_alleles_at_same_locus():
    comparator = LocusComparator(ContigDictionary.from_names(["chr1"]))

    left = make_record("chr1", 100, ref="A", alt="C")
    right = make_record("chr1", 100, ref="AT", alt="A")

    assert comparator.compare(left, right) == 0


def test_comparator_rejects_unknown_contig():
    comparator = LocusComparator(ContigDictionary.from_names(["chr1"]))

    with pytest.raises(IncompatibleContigsError, match="chr7:5"):
        comparator.key(make_record("chr7", 5))


def test_resolve_uses_first_header_with_contigs(tmp_path):
    headers = [
        _header(tmp_path, "a.vcf", None),
        _header(tmp_path, "b.vcf", ["chr2", "chr1"]),
        _header(tmp_path, "c.vcf", ["chr1"]),
    ]

    dictionary = resolve_dictionary(None, headers)

    assert dictionary.names == ["chr2", "chr1"]
    assert dictionary.source.endswith("b.vcf")
    assert dictionary.contigs[0].length == 1000000


def test_resolve_prefers_override(tmp_path):
    override = ContigDictionary.from_names(["chrA"], source="override")
    headers = [_header(tmp_path, "a.vcf", ["chr1"])]

    assert resolve_dictionary(override, headers) is override


def test_resolve_without_any_contigs_raises(tmp_path):
    headers = [_header(tmp_path, "a.vcf", None), _header(tmp_path, "b.vcf", None)]

    with pytest.raises(MissingDictionaryError, match="sequence dictionary must be available"):
        resolve_dictionary(None, headers)


def test_load_sam_style_dictionary(tmp_path):
    dict_path = tmp_path / "ref.dict"
    dict_path.write_text(
        "@HD\tVN:1.6\n"
        "@SQ\tSN:chr1\tLN:248956422\n"
        "@SQ\tSN:chr2\tLN:242193529\n",
        encoding="utf-8",
    )

    dictionary = load_sequence_dictionary(dict_path)

    assert dictionary.names == ["chr1", "chr2"]
    assert dictionary.contigs[1].length == 242193529


def test_load_dictionary_from_vcf_header(tmp_path):
    path = tmp_path / "dict.vcf"
    path.write_text(vcf_text(["chrB", "chrA"], [], []), encoding="utf-8")

    dictionary = load_sequence_dictionary(str(path))

    assert dictionary.names == ["chrB", "chrA"]


def test_load_dictionary_without_contigs_raises(tmp_path):
    path = tmp_path / "empty.vcf"
    path.write_text(vcf_text(None, [], []), encoding="utf-8")

    with pytest.raises(MissingDictionaryError):
        load_sequence_dictionary(str(path))


def test_load_missing_dictionary_file_raises(tmp_path):
    with pytest.raises(UnreadableInputError):
        load_sequence_dictionary(tmp_path / "absent.dict")


def test_contig_header_lines_round_trip():
    dictionary = ContigDictionary.from_names(["chr1", "chr2"])

    lines = dictionary.header_lines()

    assert [line.id for line in lines] == ["chr1", "chr2"]
