"""Tests for the student/advisor scoring and batch assignment."""
import logging

import pytest

from models.matching import Advisor, MatchStatus, Student
from services.matcher import (
    available_advisors,
    build_reason,
    full_advisors,
    match_students_to_advisors,
    score_advisor,
)


def make_student(sid: str, field: str, interests: list[str], name: str | None = None) -> Student:
    return Student(id=sid, name=name or f"Student {sid}", academic_field=field, research_interests=interests)


def make_advisor(
    aid: str,
    field: str,
    focus: list[str],
    max_capacity: int = 3,
    current_load: int = 0,
    name: str | None = None,
) -> Advisor:
    return Advisor(
        id=aid,
        name=name or f"Advisor {aid}",
        specialization=field,
        research_focus=focus,
        max_capacity=max_capacity,
        current_load=current_load,
    )


# ── Scoring ──────────────────────────────────────────────────────────────

def test_full_overlap_scores_one_hundred():
    student = make_student("a", "CS", ["ml", "nlp"])
    advisor = make_advisor("x", "CS", ["ml", "nlp", "vision"])

    score = score_advisor(student, advisor)

    assert score.percentage == 100.0
    assert score.percentage_text == "100.00"
    assert score.matched_interests == ["ml", "nlp"]


@pytest.mark.parametrize(
    "field, interests, expected",
    [
        ("EE", ["ml", "robotics"], "28.57"),   # half the interests, other field
        ("CS", ["robotics"], "42.86"),          # field only
        ("CS", ["ml", "robotics"], "71.43"),    # field and half the interests
        ("EE", ["ml"], "57.14"),                # every interest, other field
        ("EE", ["robotics"], "0.00"),
    ],
)
def test_percentage_is_taken_over_seventy_points(field, interests, expected):
    advisor = make_advisor("x", "CS", ["ml", "nlp"])
    score = score_advisor(make_student("s", field, interests), advisor)
    assert score.percentage_text == expected


def test_exact_half_hundredth_rounds_up():
    # 7 of 128 interests, other field: exactly 3.125
    interests = [f"topic {n}" for n in range(128)]
    score = score_advisor(make_student("s", "EE", interests), make_advisor("x", "CS", interests[:7]))
    assert score.percentage == 3.13
    assert score.percentage_text == "3.13"


def test_interest_matching_is_case_sensitive():
    score = score_advisor(make_student("s", "EE", ["ML"]), make_advisor("x", "CS", ["ml"]))
    assert score.matched_interests == []
    assert score.percentage == 0.0


def test_field_matching_is_case_sensitive():
    score = score_advisor(make_student("s", "cs", ["robotics"]), make_advisor("x", "CS", ["ml"]))
    assert score.percentage == 0.0


def test_student_without_interests_gets_no_interest_points():
    score = score_advisor(make_student("s", "CS", []), make_advisor("x", "CS", ["ml"]))
    assert score.percentage_text == "42.86"
    assert score.matched_interests == []


def test_matched_interests_keep_student_order():
    student = make_student("s", "CS", ["vision", "robotics", "ml"])
    score = score_advisor(student, make_advisor("x", "CS", ["ml", "vision"]))
    assert score.matched_interests == ["vision", "ml"]


def test_percentages_stay_within_bounds():
    advisor = make_advisor("x", "CS", ["a", "b", "c"])
    for field in ("CS", "EE"):
        for interests in ([], ["a"], ["a", "z"], ["a", "b", "c"], ["x", "y", "z"]):
            score = score_advisor(make_student("s", field, interests), advisor)
            assert 0.0 <= score.percentage <= 100.0
            assert score.percentage == round(score.percentage, 2)


# ── Reasons ──────────────────────────────────────────────────────────────

def test_reason_same_field_and_interests():
    assert build_reason("CS", True, ["ml", "nlp"]) == "Shares same field (CS) and common interests: ml, nlp."


def test_reason_interests_only():
    assert build_reason("EE", False, ["ml"]) == "Different field but shares interests in ml."


def test_reason_field_only():
    assert build_reason("CS", True, []) == "Same academic field (CS), but different research focus."


def test_reason_no_overlap():
    assert build_reason("EE", False, []) == "Different field and no shared interests."


# ── Capacity filters ────────────────────────────────────────────────────

def test_capacity_filters_split_advisors():
    open_ = make_advisor("open", "CS", [], max_capacity=2, current_load=1)
    full = make_advisor("full", "CS", [], max_capacity=2, current_load=2)
    over = make_advisor("over", "CS", [], max_capacity=1, current_load=3)

    assert available_advisors([open_, full, over]) == [open_]
    assert full_advisors([open_, full, over]) == [full, over]


# ── Batch matching ───────────────────────────────────────────────────────

def test_strong_match_assigns_and_increments_load():
    advisor = make_advisor("x", "CS", ["ml", "nlp", "vision"], max_capacity=1)
    advisors = [advisor]

    [result] = match_students_to_advisors([make_student("a", "CS", ["ml", "nlp"], name="A")], advisors)

    assert result.status == MatchStatus.strong
    assert result.student_id == "a"
    assert result.student_name == "A"
    assert result.assigned_advisor.advisor_id == "x"
    assert result.assigned_advisor.match_percentage == "100.00"
    assert result.assigned_advisor.matched_interests == ["ml", "nlp"]
    assert result.assigned_advisor.reason == "Shares same field (CS) and common interests: ml, nlp."
    assert result.recommendations is None
    assert advisors[0].current_load == 1


def test_full_advisor_is_skipped_for_later_students():
    advisors = [make_advisor("x", "CS", ["ml", "nlp", "vision"], max_capacity=1)]
    students = [
        make_student("a", "CS", ["ml", "nlp"]),
        make_student("b", "EE", ["robotics"]),
    ]

    first, second = match_students_to_advisors(students, advisors)

    assert first.status == MatchStatus.strong
    assert second.assigned_advisor is None
    assert second.status == MatchStatus.none_found
    assert second.recommendations == []
    assert advisors[0].current_load == 1


def test_processing_order_decides_single_slot():
    advisors = [make_advisor("x", "CS", ["ml"], max_capacity=1)]
    students = [make_student("first", "CS", ["ml"]), make_student("second", "CS", ["ml"])]

    first, second = match_students_to_advisors(students, advisors)

    assert first.assigned_advisor.advisor_id == "x"
    assert second.assigned_advisor is None
    assert second.recommendations == []


def test_weak_match_returns_ranked_recommendations():
    advisors = [
        make_advisor("none", "Math", ["algebra"], name="No Overlap"),
        make_advisor("half", "Bio", ["ml"], name="Half Interests"),
        make_advisor("field", "CS", ["vision"], name="Same Field"),
    ]

    [result] = match_students_to_advisors([make_student("s", "CS", ["ml", "robotics"])], advisors)

    assert result.status == MatchStatus.none_found
    assert result.assigned_advisor is None
    assert [r.advisor_name for r in result.recommendations] == ["Same Field", "Half Interests", "No Overlap"]
    assert [r.match_percentage for r in result.recommendations] == ["42.86", "28.57", "0.00"]
    assert set(result.recommendations[0].model_dump()) == {"advisor_name", "match_percentage", "reason"}
    assert all(a.current_load == 0 for a in advisors)


def test_ties_keep_advisor_order():
    advisors = [
        make_advisor("p", "CS", ["ml"], name="P"),
        make_advisor("q", "CS", ["ml"], name="Q"),
    ]
    [result] = match_students_to_advisors([make_student("s", "CS", ["ml"])], advisors)

    assert result.assigned_advisor.advisor_id == "p"
    assert [a.current_load for a in advisors] == [1, 0]


def test_tied_recommendations_keep_advisor_order():
    advisors = [make_advisor(n, "Bio", [], name=n) for n in ("r1", "r2", "r3")]
    [result] = match_students_to_advisors([make_student("s", "CS", ["ml"])], advisors)
    assert [r.advisor_name for r in result.recommendations] == ["r1", "r2", "r3"]


def test_strong_match_threshold_is_inclusive():
    # 3 of 4 interests (30 points) + 0 field = 42.86; with field (60 points) = 85.71
    advisors = [make_advisor("x", "Bio", ["a", "b", "c"])]
    [result] = match_students_to_advisors([make_student("s", "CS", ["a", "b", "c", "d"])], advisors)
    assert result.status == MatchStatus.none_found

    # 7 of 8 interests = 35 points = 50.00%
    focus = list("abcdefg")
    advisors = [make_advisor("y", "Bio", focus)]
    [result] = match_students_to_advisors([make_student("t", "CS", focus + ["h"])], advisors)
    assert result.assigned_advisor.match_percentage == "50.00"
    assert result.status == MatchStatus.strong


def test_load_never_exceeds_capacity():
    advisors = [
        make_advisor("x", "CS", ["ml"], max_capacity=2),
        make_advisor("y", "CS", ["ml"], max_capacity=1, current_load=1),
    ]
    students = [make_student(str(i), "CS", ["ml"]) for i in range(5)]

    results = match_students_to_advisors(students, advisors)

    assert len(results) == 5
    assert [r.student_id for r in results] == [str(i) for i in range(5)]
    assert advisors[0].current_load == 2
    assert advisors[1].current_load == 1
    assert sum(r.assigned_advisor is not None for r in results) == 2


def test_all_advisors_full_yields_empty_recommendations(caplog):
    advisors = [
        make_advisor("x", "CS", ["ml"], max_capacity=1, current_load=1),
        make_advisor("y", "EE", ["ml"], max_capacity=0),
    ]
    students = [make_student("a", "CS", ["ml"], name="Ada"), make_student("b", "EE", ["ml"], name="Ben")]

    with caplog.at_level(logging.INFO, logger="services.matcher"):
        results = match_students_to_advisors(students, advisors)

    assert all(r.assigned_advisor is None for r in results)
    assert all(r.recommendations == [] for r in results)
    assert "No available advisors for Ada" in caplog.text
    assert "No available advisors for Ben" in caplog.text
    assert "Advisor x (ID: x) - Capacity 1/1" in caplog.text


def test_no_students_returns_empty_list():
    advisors = [make_advisor("x", "CS", ["ml"])]
    assert match_students_to_advisors([], advisors) == []
    assert advisors[0].current_load == 0


def test_students_are_not_mutated():
    student = make_student("a", "CS", ["ml", "nlp"])
    before = student.model_dump()
    match_students_to_advisors([student], [make_advisor("x", "CS", ["ml"])])
    assert student.model_dump() == before
