#!/usr/bin/env python3
"""Seed the database with sample advisors and students.

Usage:
    # Uses MONGODB_URL / MONGODB_DB like the API server
    python seed.py

    # Drop students, advisors and matches first
    python seed.py --clean

    # Also run a committed batch match and print the outcome
    python seed.py --clean --run
"""

import argparse
import asyncio
import json

from db import close_db, connect_db, get_db
from models.advisor import AdvisorCreate, AvailabilityUpdate, create_advisor, list_advisors, update_availability
from models.student import StudentCreate, create_student
from services.matcher import run_batch_matching

SAMPLE_ADVISORS = [
    {
        "name": "Dr. Sarah Johnson",
        "email": "sarah.johnson@university.edu",
        "specialization": "Computer Science",
        "research_focus": ["Artificial Intelligence", "Machine Learning", "Data Science"],
        "max_capacity": 5,
        "current_load": 2,
    },
    {
        "name": "Prof. Michael Chen",
        "email": "michael.chen@university.edu",
        "specialization": "Software Engineering",
        "research_focus": ["Software Engineering", "Web Development", "Cloud Computing"],
        "max_capacity": 4,
        "current_load": 2,
    },
    {
        "name": "Dr. Emily Davis",
        "email": "emily.davis@university.edu",
        "specialization": "Data Science",
        "research_focus": ["Data Science", "Machine Learning", "Natural Language Processing"],
        "max_capacity": 3,
        "current_load": 2,
    },
]

SAMPLE_STUDENTS = [
    {
        "name": "Amara Okafor",
        "email": "amara.okafor@students.university.edu",
        "academic_field": "Computer Science",
        "research_interests": ["Machine Learning", "Artificial Intelligence"],
        "career_goals": ["Research Scientist"],
        "year_level": "Final Year",
    },
    {
        "name": "Liam Brooks",
        "email": "liam.brooks@students.university.edu",
        "academic_field": "Data Science",
        "research_interests": ["Natural Language Processing", "Data Science"],
        "career_goals": ["Data Engineer"],
        "year_level": "Third Year",
    },
    {
        "name": "Priya Nair",
        "email": "priya.nair@students.university.edu",
        "academic_field": "Data Science",
        "research_interests": ["Machine Learning"],
        "career_goals": ["ML Engineer"],
        "year_level": "Final Year",
    },
    {
        "name": "Tomás Herrera",
        "email": "tomas.herrera@students.university.edu",
        "academic_field": "Electrical Engineering",
        "research_interests": ["Robotics", "Embedded Systems"],
        "career_goals": ["Hardware Engineer"],
        "year_level": "Third Year",
    },
]


def _print_loads(title: str, advisors) -> None:
    print(f"\n=== {title} ===")
    for a in advisors:
        print(f"  {a.name:<22} {a.current_load}/{a.max_capacity}")


async def seed(clean: bool, run: bool) -> None:
    await connect_db()
    try:
        if clean:
            db = get_db()
            for name in ("students", "advisors", "matches"):
                await db[name].delete_many({})
            print("Cleared students, advisors and matches")

        for data in SAMPLE_ADVISORS:
            load = data["current_load"]
            advisor = await create_advisor(AdvisorCreate(**{k: v for k, v in data.items() if k != "current_load"}))
            await update_availability(advisor.uid, AvailabilityUpdate(current_load=load))
        print(f"Seeded {len(SAMPLE_ADVISORS)} advisors")

        for data in SAMPLE_STUDENTS:
            await create_student(StudentCreate(**data))
        print(f"Seeded {len(SAMPLE_STUDENTS)} students")

        if run:
            _print_loads("ADVISORS BEFORE MATCHING", await list_advisors())
            response = await run_batch_matching(commit=True)
            print("\n=== MATCH RESULTS ===")
            print(json.dumps(response.model_dump(mode="json"), indent=2))
            _print_loads("ADVISORS AFTER MATCHING", await list_advisors())
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Seed sample advisors and students")
    parser.add_argument("--clean", action="store_true", help="Drop existing documents first")
    parser.add_argument("--run", action="store_true", help="Run a committed batch match afterwards")
    args = parser.parse_args()
    asyncio.run(seed(args.clean, args.run))


if __name__ == "__main__":
    main()
