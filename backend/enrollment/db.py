"""MongoDB helpers for the application."""

from datetime import datetime, timezone

from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.collection import Collection

from .config import get_db_name, get_mongo_uri

_MONGO_CLIENT = None
_MONGO_DB = None


def _get_client():
    """Create (or reuse) a MongoDB client using the configured URI."""

    global _MONGO_CLIENT

    if _MONGO_CLIENT is None:
        _MONGO_CLIENT = MongoClient(get_mongo_uri(), serverSelectionTimeoutMS=5000)
    return _MONGO_CLIENT


def configure_client(client) -> None:
    """Use an already constructed client (tests pass an in-memory one)."""

    global _MONGO_CLIENT, _MONGO_DB
    global _students_indexes_created, _courses_indexes_created
    global _enrollments_indexes_created

    _MONGO_CLIENT = client
    _MONGO_DB = None
    _students_indexes_created = False
    _courses_indexes_created = False
    _enrollments_indexes_created = False


def get_db():
    """Return the application's MongoDB database instance."""

    global _MONGO_DB

    if _MONGO_DB is None:
        _MONGO_DB = _get_client()[get_db_name()]
    return _MONGO_DB


_students_indexes_created = False
_courses_indexes_created = False
_enrollments_indexes_created = False


def _ensure_students_indexes(collection: Collection) -> None:
    global _students_indexes_created
    if _students_indexes_created:
        return

    collection.create_index("email", unique=True, name="unique_email")
    _students_indexes_created = True


def get_students_collection() -> Collection:
    """Return the collection that stores student documents."""

    collection = get_db()["students"]
    _ensure_students_indexes(collection)
    return collection


def _ensure_courses_indexes(collection: Collection) -> None:
    global _courses_indexes_created
    if _courses_indexes_created:
        return

    collection.create_indexes(
        [
            IndexModel(
                [("created_at", ASCENDING)],
                name="created_at_idx",
            ),
            IndexModel(
                [("name", ASCENDING)],
                name="name_idx",
            ),
        ]
    )
    _courses_indexes_created = True


def get_courses_collection() -> Collection:
    """Return the courses collection and ensure supporting indexes."""

    collection = get_db()["courses"]
    _ensure_courses_indexes(collection)
    return collection


def _ensure_enrollments_indexes(collection: Collection) -> None:
    global _enrollments_indexes_created
    if _enrollments_indexes_created:
        return

    indexes = [
        IndexModel(
            [("course_id", ASCENDING), ("enrolled_at", ASCENDING)],
            name="course_enrolled_at",
        ),
        IndexModel(
            [("student_id", ASCENDING), ("enrolled_at", DESCENDING)],
            name="student_enrolled_at",
        ),
        IndexModel(
            [("student_id", ASCENDING), ("course_id", ASCENDING)],
            name="unique_student_course",
            unique=True,
        ),
    ]
    collection.create_indexes(indexes)
    _enrollments_indexes_created = True


def get_enrollments_collection() -> Collection:
    """Return the enrollments collection ensuring indexes exist."""

    collection = get_db()["enrollments"]
    _ensure_enrollments_indexes(collection)
    return collection


def format_timestamp(value):
    """Render a stored datetime as an ISO-8601 UTC string."""

    if value is None:
        return None
    if not isinstance(value, datetime):
        return str(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def serialize_student(document):
    """Public view of a student; the password hash never leaves the server."""

    return {
        "id": str(document.get("_id", "")),
        "email": document.get("email"),
        "firstName": document.get("first_name"),
        "lastName": document.get("last_name"),
    }


def serialize_course(document, current_enrollments: int):
    """Serialize a raw Mongo course document to a CourseDto."""

    return {
        "id": str(document.get("_id", "")),
        "name": document.get("name"),
        "description": document.get("description"),
        "capacity": int(document.get("capacity") or 0),
        "currentEnrollments": current_enrollments,
        "createdAt": format_timestamp(document.get("created_at")),
    }


def serialize_enrollment(document, course):
    """Serialize an enrollment joined with its course into an EnrollmentDto."""

    course = course or {}
    return {
        "id": str(document.get("_id", "")),
        "courseId": document.get("course_id"),
        "courseName": course.get("name"),
        "courseDescription": course.get("description"),
        "enrolledAt": format_timestamp(document.get("enrolled_at")),
    }


def serialize_enroll_response(document):
    return {
        "id": str(document.get("_id", "")),
        "studentId": document.get("student_id"),
        "courseId": document.get("course_id"),
        "enrolledAt": format_timestamp(document.get("enrolled_at")),
    }


def serialize_roster_entry(document, student):
    """Serialize an enrollment joined with its student (StudentEnrollmentDto)."""

    student = student or {}
    return {
        "enrollmentId": str(document.get("_id", "")),
        "studentId": document.get("student_id"),
        "studentFirstName": student.get("first_name"),
        "studentLastName": student.get("last_name"),
        "studentEmail": student.get("email"),
        "enrolledAt": format_timestamp(document.get("enrolled_at")),
    }


__all__ = [
    "configure_client",
    "format_timestamp",
    "get_db",
    "get_students_collection",
    "serialize_student",
    "get_courses_collection",
    "serialize_course",
    "get_enrollments_collection",
    "serialize_enrollment",
    "serialize_enroll_response",
    "serialize_roster_entry",
]
