"""Idempotent start-up seeding of demo accounts, courses and enrollments.

``plan_seed`` is a pure function from a snapshot of what already exists to
the writes still needed; ``seed_database`` takes the snapshot, applies the
plan, and can run on every start without duplicating anything.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError
from werkzeug.security import generate_password_hash

from .db import (
    get_courses_collection,
    get_enrollments_collection,
    get_students_collection,
)
from .students import ROLE_ADMIN, ROLE_STUDENT

logger = logging.getLogger(__name__)

ADMIN_ID = "00000000-0000-0000-0000-000000000001"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin123!"
STUDENT_PASSWORD = "Student123!"

SAMPLE_STUDENTS: Tuple[Tuple[str, str, str, str], ...] = (
    ("11111111-1111-1111-1111-111111111111", "john.doe@example.com", "John", "Doe"),
    ("22222222-2222-2222-2222-222222222222", "jane.smith@example.com", "Jane", "Smith"),
    ("33333333-3333-3333-3333-333333333333", "bob.johnson@example.com", "Bob", "Johnson"),
    ("44444444-4444-4444-4444-444444444444", "alice.williams@example.com", "Alice", "Williams"),
)

SAMPLE_COURSES: Tuple[Tuple[str, str, str, int], ...] = (
    ("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa", "Introduction to Programming", "Learn the fundamentals of programming with Python", 30),
    ("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb", "Database Design", "Design and implement relational databases", 25),
    ("cccccccc-cccc-cccc-cccc-cccccccccccc", "Web Development", "Build modern web applications with Flask", 35),
    ("dddddddd-dddd-dddd-dddd-dddddddddddd", "Software Engineering", "Principles and practices of software development", 20),
    ("eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee", "Data Structures and Algorithms", "Essential data structures and algorithm design", 28),
    ("ffffffff-0000-0000-0000-000000000006", "Object-Oriented Programming", "Master OOP concepts and design patterns", 32),
    ("ffffffff-0000-0000-0000-000000000007", "Mobile App Development", "Create cross-platform mobile applications", 24),
    ("ffffffff-0000-0000-0000-000000000008", "Cloud Computing", "Introduction to cloud services and architecture", 26),
    ("ffffffff-0000-0000-0000-000000000009", "Machine Learning Basics", "Fundamentals of ML and data science", 22),
    ("ffffffff-0000-0000-0000-000000000010", "Cybersecurity Fundamentals", "Learn about security threats and protection", 18),
    ("ffffffff-0000-0000-0000-000000000011", "DevOps Practices", "CI/CD pipelines and deployment strategies", 30),
    ("ffffffff-0000-0000-0000-000000000012", "UI/UX Design", "Design principles and user experience", 28),
    ("ffffffff-0000-0000-0000-000000000013", "API Development", "RESTful APIs and microservices architecture", 25),
    ("ffffffff-0000-0000-0000-000000000014", "Testing and Quality Assurance", "Software testing methodologies", 20),
    ("ffffffff-0000-0000-0000-000000000015", "Project Management", "Agile and Scrum methodologies", 30),
)

# (enrollment id, student index, course index, days ago)
SAMPLE_ENROLLMENTS: Tuple[Tuple[str, int, int, int], ...] = (
    ("10000000-0000-0000-0000-000000000001", 0, 0, 10),
    ("10000000-0000-0000-0000-000000000002", 0, 1, 5),
    ("10000000-0000-0000-0000-000000000003", 1, 0, 8),
    ("10000000-0000-0000-0000-000000000004", 1, 2, 3),
    ("10000000-0000-0000-0000-000000000005", 2, 3, 7),
    ("10000000-0000-0000-0000-000000000006", 2, 4, 2),
    ("10000000-0000-0000-0000-000000000007", 3, 1, 6),
    ("10000000-0000-0000-0000-000000000008", 3, 2, 4),
)


@dataclass(frozen=True)
class SeedState:
    """What the database already holds, as far as seeding cares."""

    admin_role: Optional[str] = None
    admin_exists: bool = False
    student_ids: FrozenSet[str] = frozenset()
    student_emails: FrozenSet[str] = frozenset()
    course_ids: FrozenSet[str] = frozenset()
    has_courses: bool = False
    enrollment_ids: FrozenSet[str] = frozenset()
    enrollment_pairs: FrozenSet[Tuple[str, str]] = frozenset()


@dataclass
class SeedPlan:
    students: List[Dict[str, Any]] = field(default_factory=list)
    promote_admin: bool = False
    courses: List[Dict[str, Any]] = field(default_factory=list)
    enrollments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (
            self.students or self.promote_admin or self.courses or self.enrollments
        )


def plan_seed(state: SeedState, *, now: datetime, hash_password=generate_password_hash) -> SeedPlan:
    """Work out which seed records are missing from ``state``."""

    plan = SeedPlan()

    if not state.admin_exists:
        plan.students.append(
            {
                "_id": ADMIN_ID,
                "email": ADMIN_EMAIL,
                "first_name": "System",
                "last_name": "Administrator",
                "password_hash": hash_password(ADMIN_PASSWORD),
                "role": ROLE_ADMIN,
            }
        )
    elif state.admin_role != ROLE_ADMIN:
        plan.promote_admin = True

    for student_id, email, first_name, last_name in SAMPLE_STUDENTS:
        if student_id in state.student_ids or email in state.student_emails:
            continue
        plan.students.append(
            {
                "_id": student_id,
                "email": email,
                "first_name": first_name,
                "last_name": last_name,
                "password_hash": hash_password(STUDENT_PASSWORD),
                "role": ROLE_STUDENT,
            }
        )

    # Courses are only seeded into an empty catalog.
    available_courses = set(state.course_ids)
    if not state.has_courses:
        total = len(SAMPLE_COURSES)
        for index, (course_id, name, description, capacity) in enumerate(SAMPLE_COURSES):
            plan.courses.append(
                {
                    "_id": course_id,
                    "name": name,
                    "description": description,
                    "capacity": capacity,
                    "seats_taken": 0,
                    "created_at": now - timedelta(days=30 * (total - index)),
                }
            )
            available_courses.add(course_id)

    planned_students = {doc["_id"] for doc in plan.students}
    available_students = set(state.student_ids) | planned_students
    for enrollment_id, student_index, course_index, days_ago in SAMPLE_ENROLLMENTS:
        student_id = SAMPLE_STUDENTS[student_index][0]
        course_id = SAMPLE_COURSES[course_index][0]
        if enrollment_id in state.enrollment_ids:
            continue
        if (student_id, course_id) in state.enrollment_pairs:
            continue
        if student_id not in available_students or course_id not in available_courses:
            continue
        plan.enrollments.append(
            {
                "_id": enrollment_id,
                "student_id": student_id,
                "course_id": course_id,
                "enrolled_at": now - timedelta(days=days_ago),
            }
        )

    return plan


def read_seed_state() -> SeedState:
    students = get_students_collection()
    courses = get_courses_collection()
    enrollments = get_enrollments_collection()

    admin = students.find_one({"email": ADMIN_EMAIL}, projection={"role": 1})
    sample_ids = [row[0] for row in SAMPLE_STUDENTS]
    sample_emails = [row[1] for row in SAMPLE_STUDENTS]
    existing_students = list(
        students.find(
            {"$or": [{"_id": {"$in": sample_ids}}, {"email": {"$in": sample_emails}}]},
            projection={"_id": 1, "email": 1},
        )
    )
    sample_course_ids = [row[0] for row in SAMPLE_COURSES]
    existing_courses = courses.find(
        {"_id": {"$in": sample_course_ids}}, projection={"_id": 1}
    )
    sample_enrollment_ids = [row[0] for row in SAMPLE_ENROLLMENTS]
    existing_enrollments = list(
        enrollments.find(
            {
                "$or": [
                    {"_id": {"$in": sample_enrollment_ids}},
                    {"student_id": {"$in": sample_ids}},
                ]
            },
            projection={"_id": 1, "student_id": 1, "course_id": 1},
        )
    )

    return SeedState(
        admin_exists=admin is not None,
        admin_role=admin.get("role") if admin else None,
        student_ids=frozenset(doc["_id"] for doc in existing_students),
        student_emails=frozenset(doc["email"] for doc in existing_students),
        course_ids=frozenset(doc["_id"] for doc in existing_courses),
        has_courses=courses.find_one({}, projection={"_id": 1}) is not None,
        enrollment_ids=frozenset(doc["_id"] for doc in existing_enrollments),
        enrollment_pairs=frozenset(
            (doc["student_id"], doc["course_id"]) for doc in existing_enrollments
        ),
    )


def _insert_each(collection, documents: List[Dict[str, Any]]) -> int:
    inserted = 0
    for document in documents:
        try:
            collection.insert_one(document)
            inserted += 1
        except DuplicateKeyError:
            # Another process seeded this record first.
            logger.debug("Seed record %s already present", document["_id"])
    return inserted


def apply_seed_plan(plan: SeedPlan) -> Dict[str, int]:
    students = get_students_collection()
    courses = get_courses_collection()
    enrollments = get_enrollments_collection()

    summary = {
        "students": _insert_each(students, plan.students),
        "courses": _insert_each(courses, plan.courses),
        "enrollments": 0,
    }

    if plan.promote_admin:
        students.update_one({"email": ADMIN_EMAIL}, {"$set": {"role": ROLE_ADMIN}})

    for document in plan.enrollments:
        if _insert_each(enrollments, [document]):
            courses.update_one(
                {"_id": document["course_id"]}, {"$inc": {"seats_taken": 1}}
            )
            summary["enrollments"] += 1

    return summary


def seed_database(now: Optional[datetime] = None) -> Dict[str, int]:
    """Bring the database up to the seed baseline and report what was added."""

    plan = plan_seed(read_seed_state(), now=now or datetime.now(timezone.utc))
    if plan.empty:
        logger.info("Seed data already present")
        return {"students": 0, "courses": 0, "enrollments": 0}

    summary = apply_seed_plan(plan)
    logger.info(
        "Seeded %(students)d student(s), %(courses)d course(s), "
        "%(enrollments)d enrollment(s)",
        summary,
    )
    return summary


__all__ = [
    "SeedPlan",
    "SeedState",
    "apply_seed_plan",
    "plan_seed",
    "read_seed_state",
    "seed_database",
]
