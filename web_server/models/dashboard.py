from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from models.matching import AssignmentStatus


# ── Student dashboard ───────────────────────────────────────────────────

class MatchedAdvisorSummary(BaseModel):
    uid: str
    name: str
    email: str
    specialization: str
    research_focus: list[str]


class StudentMatchStatus(BaseModel):
    has_matched: bool
    match_date: Optional[datetime] = None
    matched_advisor: Optional[MatchedAdvisorSummary] = None
    can_find_match: bool


class StudentStatistics(BaseModel):
    total_advisors: int
    available_advisors: int
    compatible_advisors: int
    your_interests: int
    your_goals: int


class StudentDashboard(BaseModel):
    uid: str
    name: str
    academic_field: str
    research_interests: list[str]
    interest_categories: list[str]
    career_goals: list[str]
    year_level: str
    completed_profile: bool
    match_status: StudentMatchStatus
    statistics: StudentStatistics


# ── Advisor dashboard ───────────────────────────────────────────────────

class AdvisedStudent(BaseModel):
    uid: str
    name: str
    email: str
    research_interests: list[str]
    year_level: str
    match_id: str
    match_date: datetime
    status: AssignmentStatus


class AdvisorStatistics(BaseModel):
    total_students: int
    available_slots: int
    max_capacity: int
    utilization_rate: float


class AdvisorDashboard(BaseModel):
    uid: str
    name: str
    specialization: str
    research_focus: list[str]
    bio: str
    completed_profile: bool
    students: list[AdvisedStudent]
    statistics: AdvisorStatistics
