from dataclasses import dataclass, field
from enum import Enum


class DocumentType(str, Enum):
    SPEC = "SPEC"
    BRIEF = "BRIEF"
    RAW = "RAW"


@dataclass(frozen=True)
class Equation:
    """An inline expression lifted out of flattened text behind a placeholder."""

    id: str
    raw: str
    latex: str | None = None
    confidence: float = 0.0
    needs_review: bool = False
    page: int | None = None


@dataclass
class ExtractedText:
    """Normalized text plus everything recovered while flattening it."""

    text: str
    page_count: int = 0
    equations: list[Equation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StructuredTable:
    headers: list[str]
    rows: list[list[str]]
    id: str | None = None
    type: str = "table"


@dataclass(frozen=True)
class UnstructuredTable:
    text: str
    warning: str = "TABLE UNSTRUCTURED"
    id: str | None = None
    type: str = "unstructured"


TableBlock = StructuredTable | UnstructuredTable


@dataclass
class Part:
    """A lettered (or numbered) sub-question inside a task."""

    key: str
    text: str
    children: list["Part"] = field(default_factory=list)
    table_refs: list[str] = field(default_factory=list)
    formula_refs: list[str] = field(default_factory=list)


@dataclass
class Task:
    n: int
    label: str
    text: str
    title: str | None = None
    aias: str | None = None
    pages: list[int] = field(default_factory=list)
    parts: list[Part] = field(default_factory=list)
    tables: list[TableBlock] = field(default_factory=list)
    formulas: list[Equation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    confidence: str = "CLEAN"


@dataclass
class BriefHeader:
    unit_code: str | None = None
    unit_title: str | None = None
    assignment_title: str | None = None
    assignment_number: int | None = None
    total_assignments: int | None = None
    assignment_code: str | None = None
    aias_level: int | None = None
    academic_year: str | None = None


@dataclass(frozen=True)
class EndMatter:
    sources_block: str | None = None
    criteria_block: str | None = None


@dataclass(frozen=True)
class AssessmentCriterion:
    code: str
    band: str
    description: str


@dataclass
class LearningOutcome:
    lo_code: str
    description: str
    criteria: list[AssessmentCriterion] = field(default_factory=list)


@dataclass
class UnitInfo:
    unit_code: str = ""
    unit_title: str = ""
    level: int | None = None
    credits: int | None = None
    issue: str | None = None


@dataclass
class ParsedSpec:
    unit: UnitInfo
    learning_outcomes: list[LearningOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class StructuredDocument:
    """Type-specific structure recovered from one document."""

    kind: DocumentType
    tasks: list[Task] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    header: BriefHeader | None = None
    end_matter: EndMatter | None = None
    detected_criterion_codes: list[str] = field(default_factory=list)
    lo_headers: list[str] = field(default_factory=list)
    spec: ParsedSpec | None = None
