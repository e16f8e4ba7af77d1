from dataclasses import dataclass, field


@dataclass(frozen=True)
class FeedbackSourceContext:
    """Assignment identifiers that count as legitimate source vocabulary."""

    unit_code: str | None = None
    assignment_code: str | None = None
    assignment_title: str | None = None


@dataclass(frozen=True)
class LintContext:
    """Everything a lint pass may consult, computed once per feedback text."""

    overall_grade: str = ""
    source_corpus: str = ""
    unachieved_codes: frozenset[str] = field(default_factory=frozenset)

    @property
    def open_bands(self) -> frozenset[str]:
        return frozenset(code[0] for code in self.unachieved_codes)


@dataclass(frozen=True)
class SanitizedFeedback:
    text: str
    changed: bool
    changed_lines: int
