import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from config import STRONG_MATCH_THRESHOLD, WEIGHTS
from models.advisor import increment_load, list_advisors
from models.matching import (
    Advisor,
    AdvisorMatch,
    BatchMatchResponse,
    MatchResult,
    MatchStatus,
    Recommendation,
    Student,
    StudentMatchResponse,
    create_match,
)
from models.student import claim_student, clear_student_match, get_student, list_students
from services.notifier import notifier

logger = logging.getLogger(__name__)


class MatchingError(ValueError):
    """A student cannot be put through matching in their current state."""


class ProfileIncompleteError(MatchingError):
    pass


class AlreadyMatchedError(MatchingError):
    pass


# ── Scoring ──────────────────────────────────────────────────────────────

@dataclass
class AdvisorScore:
    advisor: Advisor
    percentage: float
    matched_interests: list[str] = field(default_factory=list)
    reason: str = ""

    @property
    def percentage_text(self) -> str:
        return f"{self.percentage:.2f}"

    def to_match(self) -> AdvisorMatch:
        return AdvisorMatch(
            advisor_id=self.advisor.id,
            advisor_name=self.advisor.name,
            match_percentage=self.percentage_text,
            matched_interests=list(self.matched_interests),
            reason=self.reason,
        )

    def to_recommendation(self) -> Recommendation:
        return Recommendation(
            advisor_name=self.advisor.name,
            match_percentage=self.percentage_text,
            reason=self.reason,
        )


def round_percentage(value: float) -> float:
    """Two decimals, halves rounded away from zero (3.125 -> 3.13)."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def build_reason(academic_field: str, same_field: bool, matched_interests: list[str]) -> str:
    shared = ", ".join(matched_interests)
    if matched_interests and same_field:
        return f"Shares same field ({academic_field}) and common interests: {shared}."
    if matched_interests:
        return f"Different field but shares interests in {shared}."
    if same_field:
        return f"Same academic field ({academic_field}), but different research focus."
    return "Different field and no shared interests."


def score_advisor(student: Student, advisor: Advisor) -> AdvisorScore:
    """Weighted fit of one advisor for one student, as a 0-100 percentage."""
    focus = set(advisor.research_focus)
    matched = [i for i in student.research_interests if i in focus]

    # A student without interests earns nothing on this criterion
    interest_term = 0.0
    if student.research_interests:
        interest_term = len(matched) / len(student.research_interests) * WEIGHTS["interests"]

    same_field = advisor.specialization == student.academic_field
    field_term = WEIGHTS["field"] if same_field else 0

    total_possible = sum(WEIGHTS.values())
    percentage = round_percentage((interest_term + field_term) / total_possible * 100)

    return AdvisorScore(
        advisor=advisor,
        percentage=percentage,
        matched_interests=matched,
        reason=build_reason(student.academic_field, same_field, matched),
    )


def available_advisors(advisors: list[Advisor]) -> list[Advisor]:
    return [a for a in advisors if a.current_load < a.max_capacity]


def full_advisors(advisors: list[Advisor]) -> list[Advisor]:
    return [a for a in advisors if a.current_load >= a.max_capacity]


# ── Batch matching ───────────────────────────────────────────────────────

def match_students_to_advisors(students: list[Student], advisors: list[Advisor]) -> list[MatchResult]:
    """Assign each student, in order, to their best advisor or return recommendations.

    Advisors are shared across the whole batch: a strong match bumps the
    advisor's current_load in place, so later students see less capacity.
    Callers wanting an isolated run should pass copies.
    """
    results: list[MatchResult] = []

    for student in students:
        candidates = available_advisors(advisors)
        if not candidates:
            logger.warning("No available advisors for %s", student.name)

        # sorted() is stable, so ties keep advisor order
        ranked = sorted(
            (score_advisor(student, advisor) for advisor in candidates),
            key=lambda s: s.percentage,
            reverse=True,
        )

        best = ranked[0] if ranked else None
        if best is not None and best.percentage >= STRONG_MATCH_THRESHOLD:
            advisor_ref = next((a for a in advisors if a.id == best.advisor.id), None)
            if advisor_ref is not None:
                advisor_ref.current_load += 1

            results.append(MatchResult(
                student_id=student.id,
                student_name=student.name,
                assigned_advisor=best.to_match(),
                status=MatchStatus.strong,
            ))
        else:
            results.append(MatchResult(
                student_id=student.id,
                student_name=student.name,
                assigned_advisor=None,
                status=MatchStatus.none_found,
                recommendations=[s.to_recommendation() for s in ranked],
            ))

    full = full_advisors(advisors)
    if full:
        logger.info("Advisors skipped (full capacity reached):")
        for advisor in full:
            logger.info(
                "- %s (ID: %s) - Capacity %d/%d",
                advisor.name, advisor.id, advisor.current_load, advisor.max_capacity,
            )

    return results


# ── Persistence ──────────────────────────────────────────────────────────

async def _commit_assignment(result: MatchResult) -> bool:
    """Persist a strong match. Returns False if the advisor filled up meanwhile.

    The student is claimed before the advisor's slot is taken, so two
    concurrent runs cannot both assign the same student.
    """
    assigned = result.assigned_advisor
    if assigned is None:
        return False

    if not await claim_student(result.student_id, assigned.advisor_id):
        raise AlreadyMatchedError("You have already been matched with an advisor")

    if not await increment_load(assigned.advisor_id):
        logger.warning(
            "Advisor %s reached capacity before %s could be assigned",
            assigned.advisor_id, result.student_id,
        )
        await clear_student_match(result.student_id, assigned.advisor_id)
        return False

    match = await create_match(
        student_uid=result.student_id,
        advisor_uid=assigned.advisor_id,
        match_reason=assigned.reason,
        match_score=float(assigned.match_percentage),
    )
    logger.info(
        "Assigned %s to %s (%s%%)",
        result.student_name, assigned.advisor_name, assigned.match_percentage,
    )

    event = {
        "type": "match_found",
        "match": match.model_dump(mode="json"),
        "result": result.model_dump(mode="json"),
    }
    await notifier.broadcast_to_users([result.student_id, assigned.advisor_id], event)
    return True


async def run_batch_matching(commit: bool = True) -> BatchMatchResponse:
    """Match every unmatched, completed student against completed advisors."""
    students = [p.to_candidate() for p in await list_students(only_unmatched=True, only_completed=True)]
    advisors = [p.to_candidate() for p in await list_advisors(only_completed=True)]

    logger.info("Matching %d students against %d advisors", len(students), len(advisors))
    results = match_students_to_advisors(students, advisors)

    if commit:
        for result in results:
            if result.assigned_advisor is None:
                continue
            try:
                await _commit_assignment(result)
            except AlreadyMatchedError:
                logger.warning("%s was matched by another request, skipping", result.student_id)

    assigned = sum(1 for r in results if r.assigned_advisor is not None)
    return BatchMatchResponse(
        results=results,
        assigned=assigned,
        unassigned=len(results) - assigned,
        committed=commit,
    )


def explain_no_match(student: Student, advisors: list[Advisor]) -> str:
    if not advisors:
        return "No advisors are currently registered in the system."

    interests = set(student.research_interests)
    sharing = [a for a in advisors if interests & set(a.research_focus)]
    if not sharing:
        return "No advisors found matching your research interests."
    if not available_advisors(sharing):
        return "All advisors with matching research interests are currently at full capacity."
    return "No available advisor was a strong enough match for your profile."


async def find_match_for_student(uid: str) -> Optional[StudentMatchResponse]:
    """Match one student now. Returns None if the student does not exist."""
    profile = await get_student(uid)
    if profile is None:
        return None
    if profile.has_matched:
        raise AlreadyMatchedError("You have already been matched with an advisor")
    if not profile.completed_profile:
        raise ProfileIncompleteError("Please complete your profile before finding a match")

    student = profile.to_candidate()
    advisors = [p.to_candidate() for p in await list_advisors(only_completed=True)]
    [result] = match_students_to_advisors([student], advisors)

    if result.assigned_advisor is not None:
        await _commit_assignment(result)
        return StudentMatchResponse(**result.model_dump())

    return StudentMatchResponse(**result.model_dump(), message=explain_no_match(student, advisors))
