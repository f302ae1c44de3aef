"""Enrollment engine: seat reservation, deregistration and roster queries.

A student holds at most one enrollment per course, and a course never holds
more enrollments than its capacity. Both rules are checked here and backed
by the store: the ``unique_student_course`` index rejects duplicate rows and
seats are reserved with a conditional ``$inc`` on the course's
``seats_taken`` counter, so two processes cannot oversell a course. Inside a
process every seat change runs under the course's lock, where the counter
is first reset to the enrollment row count if it has drifted.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from .catalog import course_lock, sync_seats_taken
from .db import (
    get_courses_collection,
    get_enrollments_collection,
    get_students_collection,
)
from .errors import ErrorKind, Result

# Retries when an admin changes the capacity between our read and reservation.
MAX_RESERVATION_ATTEMPTS = 3

logger = logging.getLogger(__name__)


def _course_not_found() -> Result:
    return Result.failure(
        ErrorKind.NOT_FOUND, "Course not found", "This course is no longer available."
    )


def _already_enrolled() -> Result:
    return Result.failure(
        ErrorKind.ALREADY_ENROLLED,
        "Already enrolled",
        "You are already enrolled in this course.",
    )


def _course_full(capacity: int) -> Result:
    return Result.failure(
        ErrorKind.COURSE_FULL,
        "Course full",
        f"This course is full. Capacity: {capacity} students.",
    )


def _reserve_seat(course_id: str) -> Result[Dict[str, Any]]:
    courses = get_courses_collection()

    for _ in range(MAX_RESERVATION_ATTEMPTS):
        course = courses.find_one({"_id": course_id})
        if course is None:
            return _course_not_found()

        capacity = int(course.get("capacity") or 0)
        if sync_seats_taken(course) >= capacity:
            return _course_full(capacity)

        reserved = courses.update_one(
            {
                "_id": course_id,
                "capacity": course.get("capacity"),
                "seats_taken": {"$lt": capacity},
            },
            {"$inc": {"seats_taken": 1}},
        )
        if reserved.modified_count:
            return Result.success(course)

        latest = courses.find_one({"_id": course_id}, projection={"capacity": 1})
        if latest is None:
            return _course_not_found()
        if latest.get("capacity") == course.get("capacity"):
            return _course_full(capacity)

    return _course_full(int(course.get("capacity") or 0))


def _release_seat(course_id: str) -> None:
    get_courses_collection().update_one(
        {"_id": course_id, "seats_taken": {"$gt": 0}},
        {"$inc": {"seats_taken": -1}},
    )


def enroll(student_id: str, course_id: str) -> Result[Dict[str, Any]]:
    """Enroll a student in a course.

    Fails with ``NOT_FOUND`` for an unknown course, ``ALREADY_ENROLLED`` when
    the pair exists and ``COURSE_FULL`` when no seat is left.
    """

    enrollments = get_enrollments_collection()

    with course_lock(course_id):
        if get_courses_collection().find_one({"_id": course_id}, projection={"_id": 1}) is None:
            return _course_not_found()

        if enrollments.find_one(
            {"student_id": student_id, "course_id": course_id}, projection={"_id": 1}
        ):
            return _already_enrolled()

        reservation = _reserve_seat(course_id)
        if not reservation.ok:
            return reservation

        document = {
            "_id": str(uuid.uuid4()),
            "student_id": student_id,
            "course_id": course_id,
            "enrolled_at": datetime.now(timezone.utc),
        }
        try:
            enrollments.insert_one(document)
        except DuplicateKeyError:
            _release_seat(course_id)
            return _already_enrolled()
        except Exception:
            _release_seat(course_id)
            raise

    logger.info(
        "Student %s enrolled in course %s at %s",
        student_id,
        course_id,
        document["enrolled_at"].isoformat(),
    )
    return Result.success(document)


def deregister(enrollment_id: str, student_id: str) -> Result[None]:
    """Remove one of the student's own enrollments.

    Someone else's enrollment is reported exactly like a missing one.
    """

    enrollments = get_enrollments_collection()
    owned = {"_id": enrollment_id, "student_id": student_id}
    existing = enrollments.find_one(owned, projection={"course_id": 1})
    if existing is None:
        return Result.failure(ErrorKind.NOT_FOUND, "Enrollment not found")

    with course_lock(existing["course_id"]):
        document = enrollments.find_one_and_delete(owned)
        if document is None:
            return Result.failure(ErrorKind.NOT_FOUND, "Enrollment not found")
        _release_seat(document["course_id"])

    logger.info(
        "Student %s deregistered from enrollment %s", student_id, enrollment_id
    )
    return Result.success()


def _courses_by_id(course_ids) -> Dict[str, Dict[str, Any]]:
    ids = list(set(course_ids))
    if not ids:
        return {}
    cursor = get_courses_collection().find(
        {"_id": {"$in": ids}},
        projection={"_id": 1, "name": 1, "description": 1, "capacity": 1, "created_at": 1},
    )
    return {doc["_id"]: doc for doc in cursor}


def _students_by_id(student_ids) -> Dict[str, Dict[str, Any]]:
    ids = list(set(student_ids))
    if not ids:
        return {}
    cursor = get_students_collection().find(
        {"_id": {"$in": ids}},
        projection={"_id": 1, "first_name": 1, "last_name": 1, "email": 1},
    )
    return {doc["_id"]: doc for doc in cursor}


def list_student_enrollments(
    student_id: str,
) -> List[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """Return ``(enrollment, course)`` pairs, most recent first."""

    rows = list(
        get_enrollments_collection()
        .find({"student_id": student_id})
        .sort([("enrolled_at", DESCENDING), ("_id", ASCENDING)])
    )
    courses = _courses_by_id(row["course_id"] for row in rows)
    return [(row, courses.get(row["course_id"], {})) for row in rows]


def list_course_roster(
    course_id: str,
) -> Result[List[Tuple[Dict[str, Any], Dict[str, Any]]]]:
    """Return ``(enrollment, student)`` pairs in enrollment order."""

    if get_courses_collection().find_one({"_id": course_id}, projection={"_id": 1}) is None:
        return _course_not_found()

    rows = list(
        get_enrollments_collection()
        .find({"course_id": course_id})
        .sort([("enrolled_at", ASCENDING), ("_id", ASCENDING)])
    )
    students = _students_by_id(row["student_id"] for row in rows)
    return Result.success([(row, students.get(row["student_id"], {})) for row in rows])


def list_courses_with_rosters() -> List[
    Tuple[Dict[str, Any], List[Tuple[Dict[str, Any], Dict[str, Any]]]]
]:
    """Group every enrollment under its course, ordered by course name.

    Courses without enrollments are not listed.
    """

    rows = list(
        get_enrollments_collection()
        .find({})
        .sort([("enrolled_at", ASCENDING), ("_id", ASCENDING)])
    )
    courses = _courses_by_id(row["course_id"] for row in rows)
    students = _students_by_id(row["student_id"] for row in rows)

    grouped: Dict[str, List[Tuple[Dict[str, Any], Dict[str, Any]]]] = {}
    for row in rows:
        if row["course_id"] not in courses:
            continue
        grouped.setdefault(row["course_id"], []).append(
            (row, students.get(row["student_id"], {}))
        )

    ordered_ids = sorted(
        grouped, key=lambda course_id: (courses[course_id].get("name") or "", course_id)
    )
    return [(courses[course_id], grouped[course_id]) for course_id in ordered_ids]


__all__ = [
    "deregister",
    "enroll",
    "list_course_roster",
    "list_courses_with_rosters",
    "list_student_enrollments",
]
