from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field, model_validator

from config import DEFAULT_MAX_CAPACITY
from db import get_db
from models.matching import Advisor


class CapacityError(ValueError):
    """An availability change would leave an advisor over capacity."""


# ── Request / response schemas ──────────────────────────────────────────

class AdvisorCreate(BaseModel):
    """Body of POST /advisors."""
    name: str
    email: EmailStr
    specialization: str = ""
    research_focus: list[str] = []
    max_capacity: int = Field(DEFAULT_MAX_CAPACITY, ge=0)
    bio: str = ""


class AdvisorUpdate(BaseModel):
    """Body of PUT /advisors/{uid}. All fields optional for partial update."""
    name: Optional[str] = None
    specialization: Optional[str] = None
    research_focus: Optional[list[str]] = None
    bio: Optional[str] = None


class AvailabilityUpdate(BaseModel):
    """Body of PUT /advisors/{uid}/availability."""
    max_capacity: Optional[int] = Field(None, ge=0)
    current_load: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def load_within_capacity(self):
        if self.max_capacity is not None and self.current_load is not None:
            if self.current_load > self.max_capacity:
                raise ValueError("current_load cannot exceed max_capacity")
        return self


class AdvisorProfile(BaseModel):
    """Full document as stored in MongoDB."""
    uid: str
    name: str
    email: EmailStr
    specialization: str = ""
    research_focus: list[str] = []
    max_capacity: int
    current_load: int = 0
    bio: str = ""
    completed_profile: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def available_slots(self) -> int:
        return max(0, self.max_capacity - self.current_load)

    def to_candidate(self) -> Advisor:
        return Advisor(
            id=self.uid,
            name=self.name,
            specialization=self.specialization,
            research_focus=list(self.research_focus),
            max_capacity=self.max_capacity,
            current_load=self.current_load,
        )


class AdvisorList(BaseModel):
    advisors: list[AdvisorProfile]


def is_complete(doc: dict) -> bool:
    return bool(doc.get("specialization")) and bool(doc.get("research_focus"))


# ── CRUD ─────────────────────────────────────────────────────────────────

async def create_advisor(data: AdvisorCreate) -> AdvisorProfile:
    db = get_db()
    doc = {
        "uid": str(uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
        "current_load": 0,
        **data.model_dump(),
    }
    doc["completed_profile"] = is_complete(doc)

    await db.advisors.insert_one(doc)
    doc.pop("_id", None)
    return AdvisorProfile(**doc)


async def get_advisor(uid: str) -> Optional[AdvisorProfile]:
    db = get_db()
    doc = await db.advisors.find_one({"uid": uid}, {"_id": 0})
    if doc is None:
        return None
    return AdvisorProfile(**doc)


async def list_advisors(only_completed: bool = False) -> list[AdvisorProfile]:
    db = get_db()
    query = {"completed_profile": True} if only_completed else {}
    cursor = db.advisors.find(query, {"_id": 0}).sort("created_at", 1)
    docs = await cursor.to_list(length=None)
    return [AdvisorProfile(**doc) for doc in docs]


async def update_advisor(uid: str, data: AdvisorUpdate) -> Optional[AdvisorProfile]:
    db = get_db()
    current = await db.advisors.find_one({"uid": uid}, {"_id": 0})
    if current is None:
        return None

    changes = data.model_dump(exclude_none=True)
    if not changes:
        return AdvisorProfile(**current)

    changes["completed_profile"] = is_complete({**current, **changes})
    changes["updated_at"] = datetime.now(timezone.utc).isoformat()

    result = await db.advisors.find_one_and_update(
        {"uid": uid},
        {"$set": changes},
        return_document=True,
    )
    if result is None:
        return None
    result.pop("_id", None)
    return AdvisorProfile(**result)


async def update_availability(uid: str, data: AvailabilityUpdate) -> Optional[AdvisorProfile]:
    """Change capacity or load. Raises CapacityError if load would exceed capacity."""
    db = get_db()
    changes = data.model_dump(exclude_none=True)

    # Only one side given: check it against the stored value in the same write
    query = {"uid": uid}
    if "max_capacity" in changes and "current_load" not in changes:
        query["current_load"] = {"$lte": changes["max_capacity"]}
    elif "current_load" in changes and "max_capacity" not in changes:
        query["max_capacity"] = {"$gte": changes["current_load"]}

    changes["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = await db.advisors.find_one_and_update(
        query,
        {"$set": changes},
        return_document=True,
    )
    if result is None:
        if await db.advisors.count_documents({"uid": uid}, limit=1):
            raise CapacityError("Current load cannot exceed max capacity")
        return None
    result.pop("_id", None)
    return AdvisorProfile(**result)


async def increment_load(uid: str) -> bool:
    """Take one slot, refusing when the advisor is already full."""
    db = get_db()
    result = await db.advisors.update_one(
        {"uid": uid, "$expr": {"$lt": ["$current_load", "$max_capacity"]}},
        {"$inc": {"current_load": 1}},
    )
    return result.modified_count > 0


async def delete_advisor(uid: str) -> bool:
    db = get_db()
    result = await db.advisors.delete_one({"uid": uid})
    return result.deleted_count > 0


async def release_load(uid: str) -> bool:
    """Give back one slot, never going below zero."""
    db = get_db()
    result = await db.advisors.update_one(
        {"uid": uid, "current_load": {"$gt": 0}},
        {"$inc": {"current_load": -1}},
    )
    return result.modified_count > 0
