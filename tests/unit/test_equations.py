"""Tests for inline equation detection, tokens and fallback selection."""

from gradeguard.config.policy import GradingPolicy
from gradeguard.extraction.equations import (
    REVIEW_THRESHOLD,
    EquationFallbackPolicy,
    detect_inline_equations,
    equation_token,
    equations_in,
    find_equation_tokens,
    looks_suspicious_latex,
    merge_recovered,
    orphan_equation_tokens,
    pick_equation_fallback_candidates,
    render_equations,
    strip_equation_tokens,
    word_linear_to_latex,
)
from gradeguard.extraction.models import Equation


def _eq(
    eq_id: str,
    latex: str | None = "V = I R",
    confidence: float = 0.9,
    needs_review: bool = False,
) -> Equation:
    return Equation(
        id=eq_id, raw="raw", latex=latex, confidence=confidence, needs_review=needs_review
    )


class TestTokens:
    def test_token_format(self) -> None:
        assert equation_token("p1-eq2") == "[[EQ:p1-eq2]]"

    def test_find_and_strip(self) -> None:
        text = "solve [[EQ:p1-eq1]] then [[EQ:p2-eq1]]"
        assert find_equation_tokens(text) == ["p1-eq1", "p2-eq1"]
        assert "[[EQ" not in strip_equation_tokens(text)

    def test_orphans_are_reported_once(self) -> None:
        text = "[[EQ:a]] [[EQ:b]] [[EQ:b]]"
        assert orphan_equation_tokens(text, [_eq("a")]) == ["b"]

    def test_render_prefers_latex_and_keeps_unknown(self) -> None:
        text = "[[EQ:a]] and [[EQ:zz]]"
        assert render_equations(text, [_eq("a", latex="V = IR")]) == "V = IR and [[EQ:zz]]"

    def test_render_falls_back_to_raw(self) -> None:
        assert render_equations("[[EQ:a]]", [_eq("a", latex=None)]) == "raw"

    def test_equations_in_follows_token_order(self) -> None:
        eqs = [_eq("a"), _eq("b")]
        found = equations_in("[[EQ:b]] [[EQ:a]] [[EQ:b]]", eqs)
        assert [eq.id for eq in found] == ["b", "a"]


class TestWordLinearToLatex:
    def test_sqrt(self) -> None:
        assert word_linear_to_latex("sqrt(x)") == "\\sqrt{x}"

    def test_trig_functions(self) -> None:
        assert word_linear_to_latex("sin(x)") == "\\sin(x)"

    def test_simple_fraction(self) -> None:
        assert word_linear_to_latex("a/b") == "\\frac{a}{b}"

    def test_parenthesised_fraction(self) -> None:
        assert word_linear_to_latex("(a+b)/(c+d)") == "\\frac{a+b}{c+d}"

    def test_unicode_minus(self) -> None:
        assert word_linear_to_latex("y=x" + chr(0x2212) + "1") == "y = x-1"

    def test_empty(self) -> None:
        assert word_linear_to_latex("") == ""


class TestDetectInlineEquations:
    def test_replaces_formula_line_with_token(self) -> None:
        text, eqs = detect_inline_equations("Intro text\nV = I * R\nMore prose here.")
        assert text == "Intro text\n[[EQ:p1-eq1]]\nMore prose here."
        assert len(eqs) == 1
        eq = eqs[0]
        assert eq.id == "p1-eq1"
        assert eq.raw == "V = I * R"
        assert eq.page == 1
        assert eq.confidence >= REVIEW_THRESHOLD
        assert not eq.needs_review

    def test_ids_count_per_page(self) -> None:
        text, eqs = detect_inline_equations("x = 2 * y\fintro\nF = m * a\nP = V * I")
        assert [eq.id for eq in eqs] == ["p1-eq1", "p2-eq1", "p2-eq2"]
        assert text.count("\f") == 1

    def test_unbalanced_formula_needs_review(self) -> None:
        _, eqs = detect_inline_equations("x = (a + b")
        assert eqs[0].needs_review
        assert eqs[0].confidence < REVIEW_THRESHOLD

    def test_prose_with_equals_is_not_a_formula(self) -> None:
        text = "Answer = read the chapter 3 carefully"
        assert detect_inline_equations(text) == (text, [])

    def test_sentence_is_not_a_formula(self) -> None:
        text = "x = 3 when the load is applied."
        assert detect_inline_equations(text)[1] == []

    def test_existing_tokens_are_left_alone(self) -> None:
        text = "[[EQ:p1-eq1]] = 3"
        assert detect_inline_equations(text) == (text, [])

    def test_empty(self) -> None:
        assert detect_inline_equations("") == ("", [])


class TestMergeRecovered:
    def test_applies_recovered_latex_by_id(self) -> None:
        eqs = [_eq("a", latex=None, confidence=0.3, needs_review=True), _eq("b")]
        merged = merge_recovered(eqs, {"a": ("E = mc^2", 0.9)}, 0.86)
        assert merged[0].latex == "E = mc^2"
        assert merged[0].confidence == 0.9
        assert not merged[0].needs_review
        assert merged[1] == eqs[1]

    def test_low_recovered_confidence_keeps_review_flag(self) -> None:
        eqs = [_eq("a", latex=None, confidence=0.3, needs_review=True)]
        merged = merge_recovered(eqs, {"a": ("E = mc^2", 0.5)}, 0.86)
        assert merged[0].needs_review


class TestLooksSuspiciousLatex:
    def test_empty_or_short_is_suspicious(self) -> None:
        assert looks_suspicious_latex(None)
        assert looks_suspicious_latex("x=1")

    def test_bibliography_bleed_is_suspicious(self) -> None:
        assert looks_suspicious_latex("Pearson Education 2019")

    def test_plain_formula_is_fine(self) -> None:
        assert not looks_suspicious_latex("V = I R")


class TestPickEquationFallbackCandidates:
    def test_disabled_policy_selects_nothing(self) -> None:
        eqs = [_eq("a", latex=None, needs_review=True)]
        assert pick_equation_fallback_candidates(eqs, EquationFallbackPolicy(enabled=False)) == set()

    def test_missing_latex_qualifies(self) -> None:
        eqs = [_eq("a", latex=None), _eq("b")]
        policy = EquationFallbackPolicy(enabled=True)
        assert pick_equation_fallback_candidates(eqs, policy) == {"a"}

    def test_confident_clean_equation_is_skipped(self) -> None:
        policy = EquationFallbackPolicy(enabled=True)
        assert pick_equation_fallback_candidates([_eq("a", confidence=0.95)], policy) == set()

    def test_low_confidence_under_review_qualifies(self) -> None:
        policy = EquationFallbackPolicy(enabled=True)
        eqs = [_eq("a", confidence=0.4, needs_review=True)]
        assert pick_equation_fallback_candidates(eqs, policy) == {"a"}

    def test_low_confidence_without_review_is_skipped(self) -> None:
        policy = EquationFallbackPolicy(enabled=True)
        assert pick_equation_fallback_candidates([_eq("a", confidence=0.4)], policy) == set()

    def test_cap_keeps_highest_scoring(self) -> None:
        eqs = [
            _eq("plain", latex=None, confidence=0.8),
            _eq("worst", latex=None, confidence=0.1, needs_review=True),
            _eq("other", latex=None, confidence=0.7),
        ]
        policy = EquationFallbackPolicy(enabled=True, max_candidates=1)
        assert pick_equation_fallback_candidates(eqs, policy) == {"worst"}

    def test_never_exceeds_cap(self) -> None:
        eqs = [_eq(f"e{i}", latex=None, needs_review=True) for i in range(10)]
        policy = EquationFallbackPolicy(enabled=True, max_candidates=4)
        assert len(pick_equation_fallback_candidates(eqs, policy)) == 4

    def test_policy_from_grading_policy(self) -> None:
        policy = EquationFallbackPolicy.from_policy(
            GradingPolicy(equation_fallback_enabled=True, equation_fallback_max_candidates=2)
        )
        assert policy.enabled
        assert policy.max_candidates == 2
        assert policy.min_confidence_to_skip == 0.86
