"""Equation placeholders, inline formula detection and fallback selection.

Formulas are lifted out of flattened text and replaced by ``[[EQ:<id>]]``
tokens so that later passes (criterion code scanning, part splitting) never
see half-recognised math. The ``Equation`` records travel alongside the text
and can be rendered back in.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from gradeguard.config.policy import GradingPolicy
from gradeguard.extraction.models import Equation
from gradeguard.extraction.text import PAGE_BREAK

EQ_TOKEN_RE = re.compile(r"\[\[EQ:([^\]\s]+)\]\]")

_FORMULA_LINE_RE = re.compile(r"^([A-Za-z][A-Za-z0-9_]{0,5}(?:\([A-Za-z]\))?)\s*=\s*(.+)$")
_MATH_SIGNAL_RE = re.compile(r"[0-9+\-*/^()\\]|\b(?:sin|cos|tan|ln|log|sqrt|pi)\b", re.IGNORECASE)
_PROSE_WORD_RE = re.compile(r"\b[a-z]{4,}\b")
_MATH_WORDS = {"sqrt", "cosh", "sinh", "tanh", "log_e"}
_SUSPICIOUS_SOURCE_RE = re.compile(
    r"sources?\s+of\s+information|routledge|pearson|wiley|bloomsbury", re.IGNORECASE
)

REVIEW_THRESHOLD = 0.7


def equation_token(equation_id: str) -> str:
    return f"[[EQ:{equation_id}]]"


def find_equation_tokens(text: str) -> list[str]:
    return EQ_TOKEN_RE.findall(text or "")


def strip_equation_tokens(text: str) -> str:
    return EQ_TOKEN_RE.sub(" ", text or "")


def orphan_equation_tokens(text: str, equations: Iterable[Equation]) -> list[str]:
    """Token ids in *text* that have no matching equation record."""
    known = {eq.id for eq in equations}
    orphans: list[str] = []
    for token_id in find_equation_tokens(text):
        if token_id not in known and token_id not in orphans:
            orphans.append(token_id)
    return orphans


def render_equations(text: str, equations: Iterable[Equation]) -> str:
    """Put equations back in place of their tokens.

    Recovered LaTeX wins over the raw form. Unknown tokens are left as-is.
    """
    by_id = {eq.id: eq for eq in equations}

    def _sub(match: re.Match[str]) -> str:
        eq = by_id.get(match.group(1))
        if eq is None:
            return match.group(0)
        return eq.latex or eq.raw

    return EQ_TOKEN_RE.sub(_sub, text or "")


def word_linear_to_latex(raw: str) -> str:
    """Convert calculator-style linear math into conservative LaTeX."""
    out = (raw or "").replace(chr(0x2212), "-").strip()
    if not out:
        return out

    for name in ("sin", "cos", "tan", "ln"):
        out = re.sub(rf"\b{name}\s*\(", rf"\\{name}(", out, flags=re.IGNORECASE)
    out = re.sub(r"\blog_?e\s*\(", r"\\log_{e}(", out, flags=re.IGNORECASE)
    out = re.sub(
        r"\bsqrt\s*\(([^()]+)\)",
        lambda m: "\\sqrt{" + m.group(1).strip() + "}",
        out,
        flags=re.IGNORECASE,
    )
    out = re.sub(
        r"\be\^\s*-\s*\(([^)]+)\)",
        lambda m: "e^{-(" + m.group(1).strip() + ")}",
        out,
    )
    out = re.sub(
        r"\be\^\s*-\s*([0-9]+(?:\.[0-9]+)?(?:\s*[A-Za-z]+)?)",
        lambda m: "e^{-" + re.sub(r"\s+", "", m.group(1)) + "}",
        out,
    )
    out = re.sub(r"\^\s*\(([^)]+)\)", lambda m: "^{" + m.group(1).strip() + "}", out)
    out = re.sub(
        r"\(([^()]+)\)\s*/\s*\(([^()]+)\)",
        lambda m: "\\frac{" + m.group(1).strip() + "}{" + m.group(2).strip() + "}",
        out,
    )
    out = re.sub(
        r"(?<![\\{A-Za-z^])\b([A-Za-z0-9.]+)\s*/\s*([A-Za-z0-9.]+)\b",
        lambda m: "\\frac{" + m.group(1) + "}{" + m.group(2) + "}",
        out,
    )
    out = re.sub(r"\s*=\s*", " = ", out)
    return re.sub(r"\s+", " ", out).strip()


def _looks_like_formula(line: str) -> re.Match[str] | None:
    stripped = line.strip()
    if len(stripped) < 3 or len(stripped) > 90 or "[[" in stripped:
        return None
    match = _FORMULA_LINE_RE.match(stripped)
    if not match:
        return None
    rhs = match.group(2)
    if not _MATH_SIGNAL_RE.search(rhs):
        return None
    prose = [w for w in _PROSE_WORD_RE.findall(rhs) if w not in _MATH_WORDS]
    if len(prose) > 1 or stripped.endswith("."):
        return None
    return match


def _score_formula(raw: str, latex: str) -> float:
    confidence = 0.92
    if raw.count("(") != raw.count(")"):
        confidence -= 0.35
    if "?" in raw or chr(0xFFFD) in raw:
        confidence -= 0.4
    if raw.rstrip().endswith(("=", "+", "-", "*", "/", "^")):
        confidence -= 0.3
    if looks_suspicious_latex(latex):
        confidence -= 0.25
    return round(max(0.0, min(1.0, confidence)), 2)


def detect_inline_equations(text: str) -> tuple[str, list[Equation]]:
    """Replace formula-looking lines with equation tokens.

    Ids are ``p<page>-eq<k>`` where k counts per page from 1. Returns the
    tokenised text and the equations in reading order.
    """
    if not text:
        return "", []
    equations: list[Equation] = []
    out_pages: list[str] = []
    for page_no, page in enumerate(text.split(PAGE_BREAK), start=1):
        k = 0
        lines: list[str] = []
        for line in page.split("\n"):
            if not _looks_like_formula(line):
                lines.append(line)
                continue
            k += 1
            raw = line.strip()
            latex = word_linear_to_latex(raw)
            confidence = _score_formula(raw, latex)
            eq = Equation(
                id=f"p{page_no}-eq{k}",
                raw=raw,
                latex=latex or None,
                confidence=confidence,
                needs_review=confidence < REVIEW_THRESHOLD,
                page=page_no,
            )
            equations.append(eq)
            indent = line[: len(line) - len(line.lstrip())]
            lines.append(indent + equation_token(eq.id))
        out_pages.append("\n".join(lines))
    return PAGE_BREAK.join(out_pages), equations


def equations_in(text: str, equations: Sequence[Equation]) -> list[Equation]:
    """Equations whose tokens appear in *text*, in token order."""
    by_id = {eq.id: eq for eq in equations}
    found: list[Equation] = []
    for token_id in find_equation_tokens(text):
        eq = by_id.get(token_id)
        if eq is not None and eq not in found:
            found.append(eq)
    return found


def merge_recovered(
    equations: Sequence[Equation],
    recovered: dict[str, tuple[str, float]],
    min_confidence_to_skip: float,
) -> list[Equation]:
    """Apply recovered ``(latex, confidence)`` pairs by id.

    The review flag is cleared only when the recovered confidence reaches
    *min_confidence_to_skip*.
    """
    merged: list[Equation] = []
    for eq in equations:
        hit = recovered.get(eq.id)
        if hit is None:
            merged.append(eq)
            continue
        latex, confidence = hit
        merged.append(
            replace(
                eq,
                latex=latex,
                confidence=confidence,
                needs_review=confidence < min_confidence_to_skip,
            )
        )
    return merged


@dataclass(frozen=True)
class EquationFallbackPolicy:
    enabled: bool = False
    max_candidates: int = 4
    min_confidence_to_skip: float = 0.86

    @classmethod
    def from_policy(cls, policy: GradingPolicy) -> "EquationFallbackPolicy":
        return cls(
            enabled=policy.equation_fallback_enabled,
            max_candidates=policy.equation_fallback_max_candidates,
            min_confidence_to_skip=policy.equation_fallback_min_confidence_to_skip,
        )


def looks_suspicious_latex(latex: str | None) -> bool:
    t = (latex or "").strip()
    if not t or len(t) < 6:
        return True
    if _SUSPICIOUS_SOURCE_RE.search(t):
        return True
    return bool(re.match(r"^i\s*=?$", t, re.IGNORECASE) or re.match(r"^=\s*1$", t))


def pick_equation_fallback_candidates(
    equations: Sequence[Equation], policy: EquationFallbackPolicy
) -> set[str]:
    """Ids of equations worth sending to an external recogniser.

    Missing LaTeX always qualifies. Present LaTeX qualifies only when the
    equation is flagged for review and is either suspicious or below 0.55
    confidence. The highest scoring candidates are kept, never more than
    ``policy.max_candidates``.
    """
    if not policy.enabled or not equations:
        return set()

    scored: list[tuple[int, str]] = []
    for eq in equations:
        if not eq or not (eq.id or "").strip():
            continue
        has_latex = bool((eq.latex or "").strip())
        confidence = float(eq.confidence or 0.0)
        suspicious = looks_suspicious_latex(eq.latex)

        eligible = (
            not has_latex
            or (suspicious and eq.needs_review)
            or (confidence < 0.55 and eq.needs_review)
        )
        if not eligible:
            continue

        score = 0
        if not has_latex and eq.needs_review:
            score += 100
        if not has_latex:
            score += 40
        if eq.needs_review:
            score += 30
        if suspicious:
            score += 20
        if confidence < policy.min_confidence_to_skip:
            score += round((policy.min_confidence_to_skip - confidence) * 100)
        scored.append((score, eq.id))

    scored.sort(key=lambda item: item[0], reverse=True)
    return {eq_id for _, eq_id in scored[: max(0, policy.max_candidates)]}
