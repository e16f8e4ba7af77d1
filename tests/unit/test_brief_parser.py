"""Tests for assignment brief parsing (tasks, header, end matter)."""

from gradeguard.extraction.brief_parser import (
    EMPTY_BODY_WARNING,
    NO_HEADINGS_WARNING,
    NO_PAGE_BREAKS_WARNING,
    extract_header,
    is_footer_line,
    parse_brief,
    parse_heading,
)
from gradeguard.extraction.models import DocumentType, Equation, StructuredTable

BRIEF_TEXT = "\f".join(
    [
        "Unit number and title 4017 Engineering Principles\n"
        "Assignment 1 of 2\n"
        "Assignment title: Forces and Circuits\n"
        "AIAS - LEVEL 2\n"
        "Academic year: 2025/26",
        "Task 1 - Static forces\n"
        "AIAS 2\n"
        "a) Describe the forces acting on a simply supported beam.\n"
        "b) Calculate the reaction at support A.\n"
        "Page 2 of 4",
        "Task 2: Circuits\n"
        "Component  Before  After\n"
        "R1  10  12\n"
        "R2  20  22\n"
        "[[EQ:p3-eq1]]",
        "Assessment Criteria\n"
        "LO1 Examine static systems P1 M1 D1",
    ]
)

OHM = Equation(id="p3-eq1", raw="V = I * R", latex="V = I * R", confidence=0.92, page=3)


class TestParseBrief:
    def test_finds_tasks_with_titles_and_pages(self) -> None:
        doc = parse_brief(BRIEF_TEXT, [OHM])
        assert doc.kind == DocumentType.BRIEF
        assert [t.n for t in doc.tasks] == [1, 2]
        assert doc.tasks[0].title == "Static forces"
        assert doc.tasks[1].title == "Circuits"
        assert doc.tasks[0].pages == [2]
        assert doc.tasks[1].pages == [3]
        assert doc.warnings == []

    def test_task_parts_and_aias(self) -> None:
        task = parse_brief(BRIEF_TEXT, [OHM]).tasks[0]
        assert [p.key for p in task.parts] == ["a", "b"]
        assert task.aias == "AIAS 2"
        assert "Page 2 of 4" not in task.text

    def test_task_tables_and_formulas(self) -> None:
        task = parse_brief(BRIEF_TEXT, [OHM]).tasks[1]
        assert "[TABLE: t2-1]" in task.text
        assert len(task.tables) == 1
        assert isinstance(task.tables[0], StructuredTable)
        assert task.tables[0].id == "t2-1"
        assert task.formulas == [OHM]

    def test_end_matter_is_not_part_of_last_task(self) -> None:
        doc = parse_brief(BRIEF_TEXT, [OHM])
        assert "Assessment Criteria" not in doc.tasks[-1].text
        assert doc.end_matter is not None
        assert doc.end_matter.criteria_block.startswith("Assessment Criteria")
        assert doc.lo_headers[0].startswith("LO1: Examine static systems")

    def test_detects_criterion_codes(self) -> None:
        assert parse_brief(BRIEF_TEXT).detected_criterion_codes == ["P1", "M1", "D1"]

    def test_header_fields(self) -> None:
        header = parse_brief(BRIEF_TEXT).header
        assert header.unit_code == "4017"
        assert header.unit_title == "Engineering Principles"
        assert header.assignment_number == 1
        assert header.total_assignments == 2
        assert header.assignment_code == "A1"
        assert header.assignment_title == "Forces and Circuits"
        assert header.aias_level == 2
        assert header.academic_year == "2025/26"

    def test_no_headings_warns(self) -> None:
        doc = parse_brief("Just some prose\fmore prose")
        assert doc.tasks == []
        assert NO_HEADINGS_WARNING in doc.warnings

    def test_no_page_breaks_warns(self) -> None:
        doc = parse_brief("Task 1\nDo a thing\nTask 2\nDo another")
        assert NO_PAGE_BREAKS_WARNING in doc.warnings
        assert [t.pages for t in doc.tasks] == [[1], [1]]

    def test_initial_idea_proposal_becomes_task_zero(self) -> None:
        text = "Initial Idea Proposal\nSubmit a one page idea.\fTask 1\nBuild it.\fTask 2\nTest it."
        tasks = parse_brief(text).tasks
        assert [t.n for t in tasks] == [0, 1, 2]
        assert tasks[0].title == "Initial Idea Proposal"
        assert tasks[0].confidence == "HEURISTIC"

    def test_empty_task_body_is_flagged(self) -> None:
        task = parse_brief("Task 1 - Intro\fTask 2\nDo it").tasks[0]
        assert task.text == "Task 1 - Intro"
        assert EMPTY_BODY_WARNING in task.warnings
        assert task.confidence == "HEURISTIC"

    def test_heading_split_across_lines(self) -> None:
        tasks = parse_brief("Task 1\nfirst\nTask\n2 Second task\nbody").tasks
        assert [t.n for t in tasks] == [1, 2]
        assert tasks[1].title == "Second task"

    def test_out_of_order_heading_is_ignored(self) -> None:
        tasks = parse_brief("Task 1\na\nTask 3\nb\nTask 2\nc").tasks
        assert [t.n for t in tasks] == [1, 3]


class TestHelpers:
    def test_parse_heading_strips_marks_and_separator(self) -> None:
        assert parse_heading("Task 3 (20 marks): Design") == (3, "Design")

    def test_parse_heading_without_title(self) -> None:
        assert parse_heading("Task 4") == (4, None)

    def test_parse_heading_rejects_zero_and_prose(self) -> None:
        assert parse_heading("Task 0") is None
        assert parse_heading("The task 1 is") is None

    def test_footer_lines(self) -> None:
        assert is_footer_line("(c) 2024 Pearson. All rights reserved")
        assert is_footer_line("Page 3 of 10")
        assert not is_footer_line("Explain the forces")

    def test_header_falls_back_to_unit_number(self) -> None:
        header = extract_header("Unit 4005 brief\nIssue 2 - 2024/25\nSubmit as A3")
        assert header.unit_code == "4005"
        assert header.assignment_code == "A3"
        assert header.academic_year == "2024/25"
