"""Tests for criterion code extraction and band ordering."""

from gradeguard.extraction.criteria_codes import (
    CriterionCode,
    code_sort_key,
    extract_codes_from_text,
    normalize_code_string,
    normalize_criterion_code,
    sort_codes,
    unique_sorted_codes,
)


class TestNormalizeCriterionCode:
    def test_canonicalizes_spacing_case_and_zero_padding(self) -> None:
        assert normalize_criterion_code("m 03") == CriterionCode(band="M", number=3)

    def test_plain_code(self) -> None:
        assert normalize_code_string("P1") == "P1"

    def test_rejects_zero(self) -> None:
        assert normalize_criterion_code("P0") is None
        assert normalize_criterion_code("d 00") is None

    def test_rejects_unknown_band(self) -> None:
        assert normalize_criterion_code("X1") is None

    def test_rejects_none_and_garbage(self) -> None:
        assert normalize_criterion_code(None) is None
        assert normalize_criterion_code("") is None
        assert normalize_criterion_code("Pass 1") is None

    def test_band_name(self) -> None:
        assert normalize_criterion_code("d2").band_name == "DISTINCTION"


class TestSorting:
    def test_sorts_by_band_then_number(self) -> None:
        assert sort_codes(["D1", "M2", "P10", "P2", "M1"]) == ["P2", "P10", "M1", "M2", "D1"]

    def test_sort_key_orders_pass_before_merit(self) -> None:
        assert code_sort_key("P9") < code_sort_key("M1")

    def test_unique_sorted_codes_deduplicates_and_skips_invalid(self) -> None:
        assert unique_sorted_codes(["p1", "P 01", "M2", "nope", "P0"]) == ["P1", "M2"]


class TestExtractCodesFromText:
    def test_finds_codes_in_prose(self) -> None:
        text = "This task covers P1, P2 and M1 and leads to D1."
        assert extract_codes_from_text(text) == ["P1", "P2", "M1", "D1"]

    def test_ignores_placeholder_ids(self) -> None:
        text = "Solve [[EQ:p4-eq1]] and see [[TABLE:t1-1]] for P3."
        assert extract_codes_from_text(text) == ["P3"]

    def test_empty_text(self) -> None:
        assert extract_codes_from_text("") == []
