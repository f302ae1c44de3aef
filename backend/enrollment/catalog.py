"""Course catalog: listing, lookup and admin maintenance of courses."""

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from .db import get_courses_collection, get_enrollments_collection
from .errors import ErrorKind, Result
from .utils.paging import PagingParams

# Public sort keys mapped to stored fields.
SORT_FIELDS = {
    "name": "name",
    "description": "description",
    "capacity": "capacity",
    "createdAt": "created_at",
    "currentEnrollments": "seats_taken",
}
DEFAULT_SORT = "createdAt"

# Seat changes for a course are serialized on one of a fixed set of locks.
LOCK_STRIPES = 64

logger = logging.getLogger(__name__)

_course_locks = tuple(Lock() for _ in range(LOCK_STRIPES))


def course_lock(course_id: str) -> Lock:
    return _course_locks[hash(course_id) % LOCK_STRIPES]


def _not_found() -> Result:
    return Result.failure(
        ErrorKind.NOT_FOUND, "Course not found", "This course is no longer available."
    )


def count_enrollments(course_id: str) -> int:
    return get_enrollments_collection().count_documents({"course_id": course_id})


def enrollment_counts(course_ids: List[str]) -> Dict[str, int]:
    """Count enrollment rows per course for a batch of course ids."""

    counts = {course_id: 0 for course_id in course_ids}
    if not course_ids:
        return counts
    cursor = get_enrollments_collection().find(
        {"course_id": {"$in": course_ids}}, projection={"course_id": 1}
    )
    for doc in cursor:
        counts[doc["course_id"]] = counts.get(doc["course_id"], 0) + 1
    return counts


def sync_seats_taken(course: Dict[str, Any]) -> int:
    """Reset the course's seat counter to its enrollment row count.

    Rows are the source of truth; the counter can only drift upwards when
    releasing a seat fails after its enrollment was deleted. Callers hold
    ``course_lock`` for the course. Returns the row count.
    """

    count = count_enrollments(course["_id"])
    if course.get("seats_taken") != count:
        get_courses_collection().update_one(
            {"_id": course["_id"]}, {"$set": {"seats_taken": count}}
        )
        logger.warning(
            "Reset seats_taken for course %s from %s to %d",
            course["_id"],
            course.get("seats_taken"),
            count,
        )
        course["seats_taken"] = count
    return count


def list_courses(
    paging: PagingParams, search: Optional[str] = None
) -> Tuple[List[Dict[str, Any]], int]:
    """Return one page of courses and the filtered total."""

    collection = get_courses_collection()
    filters: Dict[str, Any] = {}

    if search is not None and search != "":
        pattern = re.escape(search)
        filters["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    total = collection.count_documents(filters)

    cursor = (
        collection.find(filters)
        .sort([paging.sort, ("_id", paging.sort[1])])
        .skip(paging.skip)
        .limit(paging.page_size)
    )
    return list(cursor), total


def get_course(course_id: str) -> Optional[Dict[str, Any]]:
    return get_courses_collection().find_one({"_id": course_id})


def create_course(name: str, description: str, capacity: int) -> Dict[str, Any]:
    document = {
        "_id": str(uuid.uuid4()),
        "name": name,
        "description": description,
        "capacity": capacity,
        "seats_taken": 0,
        "created_at": datetime.now(timezone.utc),
    }
    get_courses_collection().insert_one(document)
    logger.info("Created course %s (%s)", document["_id"], name)
    return document


def update_course(
    course_id: str, name: str, description: str, capacity: int
) -> Result[Dict[str, Any]]:
    """Replace a course's editable fields.

    The capacity may never drop below the number of enrolled students.
    """

    collection = get_courses_collection()

    with course_lock(course_id):
        existing = collection.find_one({"_id": course_id})
        if existing is None:
            return _not_found()

        current = sync_seats_taken(existing)
        if capacity < current:
            return _capacity_below(capacity, current)

        result = collection.update_one(
            {"_id": course_id, "seats_taken": {"$lte": capacity}},
            {"$set": {"name": name, "description": description, "capacity": capacity}},
        )
        if result.matched_count == 0:
            # Another process enrolled between the count and the write.
            if collection.find_one({"_id": course_id}, projection={"_id": 1}) is None:
                return _not_found()
            return _capacity_below(capacity, count_enrollments(course_id))

    logger.info("Updated course %s", course_id)
    return Result.success(collection.find_one({"_id": course_id}))


def _capacity_below(capacity: int, current: int) -> Result:
    return Result.failure(
        ErrorKind.CAPACITY_BELOW_ENROLLMENTS,
        "Invalid capacity",
        f"Cannot set capacity to {capacity}. "
        f"Course currently has {current} enrolled students.",
    )


def delete_course(course_id: str) -> Result[None]:
    """Delete a course that nobody is enrolled in."""

    collection = get_courses_collection()

    with course_lock(course_id):
        course = collection.find_one({"_id": course_id})
        if course is None:
            return _not_found()

        enrolled = sync_seats_taken(course)
        if enrolled == 0:
            result = collection.delete_one({"_id": course_id, "seats_taken": {"$lte": 0}})
            if result.deleted_count:
                logger.info("Deleted course %s", course_id)
                return Result.success()
            if collection.find_one({"_id": course_id}, projection={"_id": 1}) is None:
                return _not_found()
            enrolled = max(count_enrollments(course_id), 1)

    return Result.failure(
        ErrorKind.COURSE_HAS_ENROLLMENTS,
        "Cannot delete course",
        f"Cannot delete course '{course.get('name')}' because it has {enrolled} "
        "active enrollment(s). Please remove all enrollments first.",
    )


__all__ = [
    "DEFAULT_SORT",
    "LOCK_STRIPES",
    "SORT_FIELDS",
    "count_enrollments",
    "course_lock",
    "create_course",
    "delete_course",
    "enrollment_counts",
    "get_course",
    "list_courses",
    "sync_seats_taken",
    "update_course",
]
