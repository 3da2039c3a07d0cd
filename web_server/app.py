import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import DuplicateKeyError

from config import CORS_ORIGINS, LOG_LEVEL

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

from db import connect_db, close_db, ping_db
from models.student import (
    StudentCreate,
    StudentList,
    StudentProfile,
    StudentUpdate,
    clear_student_match,
    create_student,
    delete_student,
    get_student,
    list_students,
    update_student,
)
from models.advisor import (
    AdvisorCreate,
    AdvisorList,
    AdvisorProfile,
    AdvisorUpdate,
    AvailabilityUpdate,
    CapacityError,
    create_advisor,
    delete_advisor,
    get_advisor,
    list_advisors,
    release_load,
    update_advisor,
    update_availability,
)
from models.matching import (
    AssignmentStatus,
    BatchMatchResponse,
    Match,
    MatchStatusUpdate,
    StudentMatchResponse,
    delete_matches_for_advisor,
    delete_matches_for_student,
    get_match,
    get_matches_for_advisor,
    get_matches_for_student,
    update_match_status,
)
from models.dashboard import (
    AdvisedStudent,
    AdvisorDashboard,
    AdvisorStatistics,
    MatchedAdvisorSummary,
    StudentDashboard,
    StudentMatchStatus,
    StudentStatistics,
)
from services.interests import INTEREST_CATEGORIES, map_interests_to_categories
from services.matcher import MatchingError, find_match_for_student, run_batch_matching
from services.notifier import notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_db()
    yield
    await close_db()


app = FastAPI(title="Student Advisor Matcher API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Service endpoints ──────────────────────────────────────────────────


async def _status() -> dict:
    return {
        "database": "Connected" if await ping_db() else "Disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/")
async def root():
    return {"message": "Student Advisor Matcher API", "status": "Running", **await _status()}


@app.get("/health")
async def health():
    return {"status": "Server running", **await _status()}


@app.get("/interests/categories")
async def interest_categories():
    return {"categories": INTEREST_CATEGORIES}


# ── Student endpoints ──────────────────────────────────────────────────


@app.post("/students", response_model=StudentProfile, status_code=201)
async def add_student(body: StudentCreate):
    try:
        return await create_student(body)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Student already exists with this email")


@app.get("/students", response_model=StudentList)
async def read_students(unmatched: bool = Query(False)):
    return StudentList(students=await list_students(only_unmatched=unmatched))


@app.get("/students/{uid}", response_model=StudentProfile)
async def read_student(uid: str):
    student = await get_student(uid)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@app.put("/students/{uid}", response_model=StudentProfile)
async def edit_student(uid: str, body: StudentUpdate):
    student = await update_student(uid, body)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


@app.delete("/students/{uid}", status_code=204)
async def remove_student(uid: str):
    deleted = await delete_student(uid)
    if not deleted:
        raise HTTPException(status_code=404, detail="Student not found")

    # Free the slots this student was holding
    for match in await delete_matches_for_student(uid):
        if match.status != AssignmentStatus.rejected:
            await release_load(match.advisor_uid)


@app.get("/students/{uid}/dashboard", response_model=StudentDashboard)
async def student_dashboard(uid: str):
    student = await get_student(uid)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")

    advisors = await list_advisors()
    available = [a for a in advisors if a.available_slots > 0]
    interests = set(student.research_interests)
    compatible = [a for a in available if interests & set(a.research_focus)]

    matched_advisor = None
    if student.matched_advisor_uid:
        advisor = await get_advisor(student.matched_advisor_uid)
        if advisor is not None:
            matched_advisor = MatchedAdvisorSummary(
                uid=advisor.uid,
                name=advisor.name,
                email=advisor.email,
                specialization=advisor.specialization,
                research_focus=advisor.research_focus,
            )

    return StudentDashboard(
        uid=student.uid,
        name=student.name,
        academic_field=student.academic_field,
        research_interests=student.research_interests,
        interest_categories=map_interests_to_categories(student.research_interests),
        career_goals=student.career_goals,
        year_level=student.year_level,
        completed_profile=student.completed_profile,
        match_status=StudentMatchStatus(
            has_matched=student.has_matched,
            match_date=student.match_date,
            matched_advisor=matched_advisor,
            can_find_match=student.completed_profile and not student.has_matched,
        ),
        statistics=StudentStatistics(
            total_advisors=len(advisors),
            available_advisors=len(available),
            compatible_advisors=len(compatible),
            your_interests=len(student.research_interests),
            your_goals=len(student.career_goals),
        ),
    )


@app.post("/students/{uid}/find-match", response_model=StudentMatchResponse)
async def student_find_match(uid: str):
    try:
        result = await find_match_for_student(uid)
    except MatchingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return result


@app.get("/students/{uid}/matches", response_model=list[Match])
async def student_matches(uid: str):
    return await get_matches_for_student(uid)


# ── Advisor endpoints ──────────────────────────────────────────────────


@app.post("/advisors", response_model=AdvisorProfile, status_code=201)
async def add_advisor(body: AdvisorCreate):
    try:
        return await create_advisor(body)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Advisor already exists with this email")


@app.get("/advisors", response_model=AdvisorList)
async def read_advisors(include_incomplete: bool = Query(False)):
    return AdvisorList(advisors=await list_advisors(only_completed=not include_incomplete))


@app.get("/advisors/{uid}", response_model=AdvisorProfile)
async def read_advisor(uid: str):
    advisor = await get_advisor(uid)
    if advisor is None:
        raise HTTPException(status_code=404, detail="Advisor not found")
    return advisor


@app.put("/advisors/{uid}", response_model=AdvisorProfile)
async def edit_advisor(uid: str, body: AdvisorUpdate):
    advisor = await update_advisor(uid, body)
    if advisor is None:
        raise HTTPException(status_code=404, detail="Advisor not found")
    return advisor


@app.put("/advisors/{uid}/availability", response_model=AdvisorProfile)
async def edit_availability(uid: str, body: AvailabilityUpdate):
    try:
        advisor = await update_availability(uid, body)
    except CapacityError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if advisor is None:
        raise HTTPException(status_code=404, detail="Advisor not found")
    return advisor


@app.delete("/advisors/{uid}", status_code=204)
async def remove_advisor(uid: str):
    deleted = await delete_advisor(uid)
    if not deleted:
        raise HTTPException(status_code=404, detail="Advisor not found")

    # Students assigned to this advisor go back to the pool
    for match in await delete_matches_for_advisor(uid):
        if match.status != AssignmentStatus.rejected:
            await clear_student_match(match.student_uid, uid)


@app.get("/advisors/{uid}/dashboard", response_model=AdvisorDashboard)
async def advisor_dashboard(uid: str):
    advisor = await get_advisor(uid)
    if advisor is None:
        raise HTTPException(status_code=404, detail="Advisor not found")

    students: list[AdvisedStudent] = []
    for match in await get_matches_for_advisor(uid):
        if match.status == AssignmentStatus.rejected:
            continue
        student = await get_student(match.student_uid)
        if student is None:
            continue
        students.append(AdvisedStudent(
            uid=student.uid,
            name=student.name,
            email=student.email,
            research_interests=student.research_interests,
            year_level=student.year_level,
            match_id=match.match_id,
            match_date=match.created_at,
            status=match.status,
        ))

    utilization = 0.0
    if advisor.max_capacity > 0:
        utilization = round(len(students) / advisor.max_capacity * 100, 1)

    return AdvisorDashboard(
        uid=advisor.uid,
        name=advisor.name,
        specialization=advisor.specialization,
        research_focus=advisor.research_focus,
        bio=advisor.bio,
        completed_profile=advisor.completed_profile,
        students=students,
        statistics=AdvisorStatistics(
            total_students=len(students),
            available_slots=advisor.available_slots,
            max_capacity=advisor.max_capacity,
            utilization_rate=utilization,
        ),
    )


# ── Matching endpoints ─────────────────────────────────────────────────


@app.post("/match/run", response_model=BatchMatchResponse)
async def run_matching(commit: bool = Query(True)):
    return await run_batch_matching(commit=commit)


@app.put("/matches/{match_id}/status", response_model=Match)
async def edit_match_status(match_id: str, body: MatchStatusUpdate):
    current = await get_match(match_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Match not found")

    if current.status == AssignmentStatus.rejected and body.status != AssignmentStatus.rejected:
        raise HTTPException(status_code=409, detail="A rejected match cannot be reopened")

    match = await update_match_status(match_id, body.status, expected=current.status)
    if match is None:
        raise HTTPException(status_code=409, detail="Match status changed, please retry")

    # A rejected assignment gives the slot back and returns the student to the pool
    if body.status == AssignmentStatus.rejected and current.status != AssignmentStatus.rejected:
        await release_load(match.advisor_uid)
        await clear_student_match(match.student_uid, match.advisor_uid)

    await notifier.broadcast_to_users(
        [match.student_uid, match.advisor_uid],
        {"type": "match_status", "match": match.model_dump(mode="json")},
    )
    return match


# ── WebSocket endpoint ─────────────────────────────────────────────────


@app.websocket("/ws/{uid}")
async def websocket_endpoint(websocket: WebSocket, uid: str):
    await notifier.connect(uid, websocket)
    try:
        while True:
            # Keep connection alive; client can send pings
            await websocket.receive_text()
    except WebSocketDisconnect:
        notifier.disconnect(uid)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
