from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel

from db import get_db


# ── Enums ────────────────────────────────────────────────────────────────

class MatchStatus(str, Enum):
    strong = "Strong Match"
    none_found = "No suitable match found"


class AssignmentStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


# ── Matcher inputs ───────────────────────────────────────────────────────

class Student(BaseModel):
    id: str
    name: str
    academic_field: str
    research_interests: list[str] = []


class Advisor(BaseModel):
    """Candidate advisor. current_load is bumped in place on assignment."""
    id: str
    name: str
    specialization: str
    research_focus: list[str] = []
    max_capacity: int
    current_load: int = 0


# ── Matcher outputs ──────────────────────────────────────────────────────

class AdvisorMatch(BaseModel):
    advisor_id: str
    advisor_name: str
    match_percentage: str
    matched_interests: list[str]
    reason: str


class Recommendation(BaseModel):
    advisor_name: str
    match_percentage: str
    reason: str


class MatchResult(BaseModel):
    student_id: str
    student_name: str
    assigned_advisor: Optional[AdvisorMatch] = None
    status: MatchStatus
    recommendations: Optional[list[Recommendation]] = None


class StudentMatchResponse(MatchResult):
    """Single-student result, with a plain explanation when nobody fit."""
    message: Optional[str] = None


class BatchMatchResponse(BaseModel):
    results: list[MatchResult]
    assigned: int
    unassigned: int
    committed: bool


# ── Persisted assignments ───────────────────────────────────────────────

class Match(BaseModel):
    """Assignment document as stored in MongoDB."""
    match_id: str
    student_uid: str
    advisor_uid: str
    match_reason: str
    match_score: float
    status: AssignmentStatus = AssignmentStatus.pending
    created_at: datetime
    updated_at: Optional[datetime] = None


class MatchStatusUpdate(BaseModel):
    """Body of PUT /matches/{match_id}/status."""
    status: AssignmentStatus


# ── CRUD ─────────────────────────────────────────────────────────────────

async def create_match(
    student_uid: str,
    advisor_uid: str,
    match_reason: str,
    match_score: float,
) -> Match:
    db = get_db()
    doc = {
        "match_id": str(uuid4()),
        "student_uid": student_uid,
        "advisor_uid": advisor_uid,
        "match_reason": match_reason,
        "match_score": match_score,
        "status": AssignmentStatus.pending.value,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "updated_at": None,
    }
    await db.matches.insert_one(doc)
    doc.pop("_id", None)
    return Match(**doc)


async def get_match(match_id: str) -> Optional[Match]:
    db = get_db()
    doc = await db.matches.find_one({"match_id": match_id}, {"_id": 0})
    if doc is None:
        return None
    return Match(**doc)


async def get_matches_for_student(student_uid: str) -> list[Match]:
    db = get_db()
    cursor = db.matches.find({"student_uid": student_uid}, {"_id": 0}).sort("created_at", -1)
    docs = await cursor.to_list(length=None)
    return [Match(**doc) for doc in docs]


async def get_matches_for_advisor(advisor_uid: str) -> list[Match]:
    db = get_db()
    cursor = db.matches.find({"advisor_uid": advisor_uid}, {"_id": 0}).sort("created_at", -1)
    docs = await cursor.to_list(length=None)
    return [Match(**doc) for doc in docs]


async def update_match_status(
    match_id: str,
    status: AssignmentStatus,
    expected: Optional[AssignmentStatus] = None,
) -> Optional[Match]:
    """Set a match status. With expected, only moves a match still in that status."""
    db = get_db()
    query = {"match_id": match_id}
    if expected is not None:
        query["status"] = expected.value
    result = await db.matches.find_one_and_update(
        query,
        {"$set": {"status": status.value, "updated_at": datetime.now(timezone.utc).isoformat()}},
        return_document=True,
    )
    if result is None:
        return None
    result.pop("_id", None)
    return Match(**result)


async def delete_matches_for_student(student_uid: str) -> list[Match]:
    """Remove a student's assignments, returning what was removed."""
    matches = await get_matches_for_student(student_uid)
    if matches:
        db = get_db()
        await db.matches.delete_many({"student_uid": student_uid})
    return matches


async def delete_matches_for_advisor(advisor_uid: str) -> list[Match]:
    matches = await get_matches_for_advisor(advisor_uid)
    if matches:
        db = get_db()
        await db.matches.delete_many({"advisor_uid": advisor_uid})
    return matches
