from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr

from db import get_db
from models.matching import Student


# ── Request / response schemas ──────────────────────────────────────────

class StudentCreate(BaseModel):
    """Body of POST /students, sent at signup."""
    name: str
    email: EmailStr
    academic_field: str = ""
    research_interests: list[str] = []
    career_goals: list[str] = []
    year_level: str = ""
    preferred_advisor_types: list[str] = []


class StudentUpdate(BaseModel):
    """Body of PUT /students/{uid}. All fields optional for partial update."""
    name: Optional[str] = None
    academic_field: Optional[str] = None
    research_interests: Optional[list[str]] = None
    career_goals: Optional[list[str]] = None
    year_level: Optional[str] = None
    preferred_advisor_types: Optional[list[str]] = None


class StudentProfile(BaseModel):
    """Full document as stored in MongoDB."""
    uid: str
    name: str
    email: EmailStr
    academic_field: str = ""
    research_interests: list[str] = []
    career_goals: list[str] = []
    year_level: str = ""
    preferred_advisor_types: list[str] = []
    completed_profile: bool = False
    has_matched: bool = False
    matched_advisor_uid: Optional[str] = None
    match_date: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    def to_candidate(self) -> Student:
        return Student(
            id=self.uid,
            name=self.name,
            academic_field=self.academic_field,
            research_interests=list(self.research_interests),
        )


class StudentList(BaseModel):
    students: list[StudentProfile]


def is_complete(doc: dict) -> bool:
    """A student can be matched once a field and at least one interest are set."""
    return bool(doc.get("academic_field")) and bool(doc.get("research_interests"))


# ── CRUD ─────────────────────────────────────────────────────────────────

async def create_student(data: StudentCreate) -> StudentProfile:
    db = get_db()
    doc = {
        "uid": str(uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
        "has_matched": False,
        "matched_advisor_uid": None,
        "match_date": None,
        **data.model_dump(),
    }
    doc["completed_profile"] = is_complete(doc)

    await db.students.insert_one(doc)
    doc.pop("_id", None)
    return StudentProfile(**doc)


async def get_student(uid: str) -> Optional[StudentProfile]:
    """Fetch a single student by uid. Returns None if not found."""
    db = get_db()
    doc = await db.students.find_one({"uid": uid}, {"_id": 0})
    if doc is None:
        return None
    return StudentProfile(**doc)


async def list_students(only_unmatched: bool = False, only_completed: bool = False) -> list[StudentProfile]:
    db = get_db()
    query: dict = {}
    if only_unmatched:
        query["has_matched"] = False
    if only_completed:
        query["completed_profile"] = True
    # Batch order is signup order
    cursor = db.students.find(query, {"_id": 0}).sort("created_at", 1)
    docs = await cursor.to_list(length=None)
    return [StudentProfile(**doc) for doc in docs]


async def update_student(uid: str, data: StudentUpdate) -> Optional[StudentProfile]:
    db = get_db()
    current = await db.students.find_one({"uid": uid}, {"_id": 0})
    if current is None:
        return None

    changes = data.model_dump(exclude_none=True)
    if not changes:
        return StudentProfile(**current)

    changes["completed_profile"] = is_complete({**current, **changes})
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()

    result = await db.students.find_one_and_update(
        {"uid": uid},
        {"$set": changes},
        return_document=True,
    )
    if result is None:
        return None
    result.pop("_id", None)
    return StudentProfile(**result)


async def claim_student(uid: str, advisor_uid: str) -> bool:
    """Mark a student matched. Returns False if they were already matched."""
    db = get_db()
    now = datetime.now(timezone.utc).isoformat()
    result = await db.students.update_one(
        {"uid": uid, "has_matched": False},
        {"$set": {
            "has_matched": True,
            "matched_advisor_uid": advisor_uid,
            "match_date": now,
            "updated_at": now,
        }},
    )
    return result.modified_count > 0


async def delete_student(uid: str) -> bool:
    """Delete a student by uid. Returns True if a document was removed."""
    db = get_db()
    result = await db.students.delete_one({"uid": uid})
    return result.deleted_count > 0


async def clear_student_match(uid: str, advisor_uid: Optional[str] = None) -> None:
    """Put a student back in the pool after their assignment fell through.

    With advisor_uid, only clears the student if they are matched to that advisor.
    """
    db = get_db()
    query = {"uid": uid}
    if advisor_uid is not None:
        query["matched_advisor_uid"] = advisor_uid
    await db.students.update_one(
        query,
        {"$set": {
            "has_matched": False,
            "matched_advisor_uid": None,
            "match_date": None,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }},
    )
