from exam_importer.parsing import (
    AnswerKey,
    AnswerMode,
    ParsedPart,
    ParsedQuestion,
    ParseWarningKind,
    QuestionType,
    normalize_answer,
    parse_answer_section,
    reconcile_answers,
)


def make_part(title, count, start_global=1):
    questions = [
        ParsedQuestion(
            content=f"Question {i}",
            type=QuestionType.MULTIPLE_CHOICE,
            options=["a", "b"],
            local_index=i,
            global_index=start_global + i - 1,
        )
        for i in range(1, count + 1)
    ]
    return ParsedPart(title=title, questions=questions)


def test_normalize_answer():
    assert normalize_answer(" b. ") == "B"
    assert normalize_answer("am") == "AM"
    assert normalize_answer("went") == "went"
    assert normalize_answer("The book was read.") == "The book was read."


def test_part_keyed_section():
    key = parse_answer_section(
        [
            "Part A: 1. B  2. C",
            "Part B",
            "1. The book was written by Tom.",
            "2) d",
        ]
    )
    assert key.mode == AnswerMode.PART_KEYED
    assert key.by_part == {
        "A": {1: "B", 2: "C"},
        "B": {1: "The book was written by Tom.", 2: "D"},
    }


def test_part_keyed_line_with_several_answers():
    key = parse_answer_section(["Part C", "1. A 2. b 3、C 4) went home"])
    assert key.by_part == {"C": {1: "A", 2: "B", 3: "C", 4: "went home"}}


def test_part_keyed_ignores_lines_before_first_part():
    key = parse_answer_section(["Checked by Ms. Lin 1. x", "Part A", "1. C"])
    assert key.mode == AnswerMode.PART_KEYED
    assert key.by_part == {"A": {1: "C"}}


def test_part_keyed_keeps_first_answer_for_repeated_number():
    key = parse_answer_section(["Part A: 1. B", "1. C"])
    assert key.by_part == {"A": {1: "B"}}


def test_global_section_one_answer_per_line():
    key = parse_answer_section(
        [
            "A",
            "b (because it is plural)",
            "went (past tense)",
            "The book was written by him.",
            "x (typo in the original)",
            "c",
        ]
    )
    assert key.mode == AnswerMode.GLOBAL
    assert key.sequence == ["A", "B", "went", "The book was written by him.", "X", "C"]


def test_empty_section():
    assert parse_answer_section([]).mode == AnswerMode.NONE
    assert parse_answer_section(["   "]).mode == AnswerMode.NONE


def test_global_reconciliation_stops_at_shorter_length():
    parts = [make_part("Part A", 2), make_part("Part B", 1, start_global=3)]
    warnings = reconcile_answers(parts, AnswerKey(mode=AnswerMode.GLOBAL, sequence=["B", "C"]))
    assert [q.correct_answer for p in parts for q in p.questions] == ["B", "C", ""]
    assert [w.kind for w in warnings] == [ParseWarningKind.ANSWER_COUNT_MISMATCH]


def test_global_reconciliation_ignores_surplus_answers():
    parts = [make_part("Part A", 1)]
    warnings = reconcile_answers(parts, AnswerKey(mode=AnswerMode.GLOBAL, sequence=["D", "A", "B"]))
    assert parts[0].questions[0].correct_answer == "D"
    assert warnings[0].kind == ParseWarningKind.ANSWER_COUNT_MISMATCH


def test_part_keyed_reconciliation_leaves_missing_entries_empty():
    parts = [make_part("Part A. Grammar", 3), make_part("Part B. Usage", 1, start_global=4)]
    key = AnswerKey(mode=AnswerMode.PART_KEYED, by_part={"A": {1: "B", 3: "went"}})
    warnings = reconcile_answers(parts, key)
    assert warnings == []
    assert [q.correct_answer for q in parts[0].questions] == ["B", "", "went"]
    assert parts[1].questions[0].correct_answer == ""


def test_reconciliation_does_not_overwrite_answers():
    parts = [make_part("Part A", 1)]
    parts[0].questions[0].correct_answer = "C"
    reconcile_answers(parts, AnswerKey(mode=AnswerMode.GLOBAL, sequence=["A"]))
    assert parts[0].questions[0].correct_answer == "C"


def test_unrecognized_answer_key_is_reported():
    parts = [make_part("Part A", 1)]
    warnings = reconcile_answers(parts, AnswerKey(mode=AnswerMode.PART_KEYED, by_part={"A": {}}))
    assert [w.kind for w in warnings] == [ParseWarningKind.ANSWER_KEY_UNRECOGNIZED]
    assert parts[0].questions[0].correct_answer == ""


def test_global_section_strips_numbers_and_wrapped_letters():
    key = parse_answer_section(["1. B", "2) (c)", "3、went", "4. (A) because it is singular", "3.5 kg"])
    assert key.mode == AnswerMode.GLOBAL
    assert key.sequence == ["B", "C", "went", "A", "3.5 kg"]
