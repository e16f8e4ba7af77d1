"""Tests for task part extraction and document-wide part ids."""

from gradeguard.extraction.brief_parser import parse_brief
from gradeguard.extraction.models import Part, Task
from gradeguard.extraction.parts import normalize_provided_parts, parse_parts, qualified_part_keys


def _keys(parts) -> list[str]:  # type: ignore[no-untyped-def]
    return [p.key for p in parts]


class TestParseParts:
    def test_letters_and_roman_children(self) -> None:
        text = (
            "Intro line\n"
            "a) Describe the pump.\n"
            "b) Explain the valve:\n"
            "i. flow rate\n"
            "ii. pressure\n"
            "c) Calculate [[EQ:p1-eq1]] using [TABLE: t1-1]"
        )
        parts, warnings = parse_parts(text)
        assert warnings == []
        assert _keys(parts) == ["a", "b", "c"]
        assert _keys(parts[1].children) == ["b.i", "b.ii"]
        assert parts[1].children[0].text == "flow rate"
        assert parts[2].formula_refs == ["p1-eq1"]
        assert parts[2].table_refs == ["t1-1"]

    def test_continuation_lines_join_current_part(self) -> None:
        parts, _ = parse_parts("a) First line\ncontinues here\nb) Second")
        assert parts[0].text == "First line continues here"

    def test_single_part_is_not_split(self) -> None:
        assert parse_parts("a) Only one part here") == ([], [])

    def test_lone_i_without_ii_is_a_letter(self) -> None:
        parts, _ = parse_parts("h) one\ni) next letter part\nj) last")
        assert _keys(parts) == ["h", "i", "j"]

    def test_numbered_list_without_letters(self) -> None:
        parts, _ = parse_parts("1. First step\n2. Second step")
        assert _keys(parts) == ["1", "2"]

    def test_numbered_lines_inside_lettered_text_are_body(self) -> None:
        parts, _ = parse_parts("a) Do this\n1. detail\nb) Do that")
        assert _keys(parts) == ["a", "b"]
        assert "1. detail" in parts[0].text

    def test_duplicate_keys_dropped_with_warning(self) -> None:
        parts, warnings = parse_parts("a) one\nb) two\na) again")
        assert _keys(parts) == ["a", "b"]
        assert warnings == ["Duplicate part key dropped: a"]

    def test_empty_text(self) -> None:
        assert parse_parts("") == ([], [])


class TestProvidedParts:
    def test_nests_by_dotted_key(self) -> None:
        provided = [
            {"key": "b", "text": "z"},
            {"key": "a.i", "text": "y"},
            {"key": "A", "text": "x"},
        ]
        parts = normalize_provided_parts(provided)
        assert _keys(parts) == ["a", "b"]
        assert _keys(parts[0].children) == ["a.i"]

    def test_skips_incomplete_entries(self) -> None:
        assert normalize_provided_parts([{"key": "a"}, {"text": "t"}, "junk"]) == []

    def test_provided_parts_win_over_text(self) -> None:
        parts, _ = parse_parts("a) one\nb) two", provided=[{"key": "x", "text": "only"}])
        assert _keys(parts) == ["x"]


class TestQualifiedPartKeys:
    def test_same_key_in_two_tasks_stays_distinct(self) -> None:
        doc = parse_brief("Task 1\na) one\nb) two\fTask 2\na) three\nb) four")
        keys = qualified_part_keys(doc.tasks)
        assert keys == ["1.a", "1.b", "2.a", "2.b"]
        assert len(set(keys)) == len(keys)

    def test_children_follow_their_parent(self) -> None:
        part = Part(key="a", text="x", children=[Part(key="a.i", text="y")])
        tasks = [Task(n=3, label="Task 3", text="x", parts=[part, Part(key="b", text="z")])]
        assert qualified_part_keys(tasks) == ["3.a", "3.a.i", "3.b"]

    def test_no_tasks(self) -> None:
        assert qualified_part_keys([]) == []
