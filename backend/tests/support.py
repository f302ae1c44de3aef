"""Shared fixtures: environment, in-memory MongoDB and authenticated clients."""

from __future__ import annotations

import os
import sys
import unittest
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

TEST_SECRET_KEY = "TestSecretKeyForLocalDevelopment-Minimum32Characters"
TEST_ISSUER = "TestIssuer"
TEST_AUDIENCE = "TestAudience"

os.environ["MONGODB_URI"] = "mongodb://localhost:27017/enrollment_test"
os.environ["JWT_ISSUER"] = TEST_ISSUER
os.environ["JWT_AUDIENCE"] = TEST_AUDIENCE
os.environ["JWT_SECRET_KEY"] = TEST_SECRET_KEY
os.environ["CORS_ORIGINS"] = "http://localhost:3000"

import mongomock  # noqa: E402

from enrollment import db  # noqa: E402
from enrollment.catalog import create_course  # noqa: E402
from enrollment.app import app  # noqa: E402
from enrollment.students import ROLE_ADMIN, ROLE_STUDENT, build_student  # noqa: E402
from enrollment.tokens import issue_token  # noqa: E402


class MongoTestCase(unittest.TestCase):
    """Point the application at a fresh in-memory database per test."""

    def setUp(self) -> None:
        db.configure_client(mongomock.MongoClient())
        self.students = db.get_students_collection()
        self.courses = db.get_courses_collection()
        self.enrollments = db.get_enrollments_collection()

    def add_student(
        self,
        email: str | None = None,
        *,
        first_name: str = "Test",
        last_name: str = "Student",
        role: str = ROLE_STUDENT,
    ) -> Dict[str, Any]:
        email = email or f"student-{uuid.uuid4().hex[:8]}@example.com"
        document = build_student(email, first_name, last_name, role=role)
        self.students.insert_one(document)
        return document

    def add_course(
        self, name: str = "Algorithms", capacity: int = 10, description: str = "Sorting"
    ) -> Dict[str, Any]:
        return create_course(name, description, capacity)

    def add_enrollment(
        self, student_id: str, course_id: str, enrolled_at: datetime | None = None
    ) -> Dict[str, Any]:
        document = {
            "_id": str(uuid.uuid4()),
            "student_id": student_id,
            "course_id": course_id,
            "enrolled_at": enrolled_at or datetime.now(timezone.utc),
        }
        self.enrollments.insert_one(document)
        self.courses.update_one({"_id": course_id}, {"$inc": {"seats_taken": 1}})
        return document


class ApiTestCase(MongoTestCase):
    """Flask test client plus bearer-token helpers."""

    def setUp(self) -> None:
        super().setUp()
        app.config["TESTING"] = True
        self.client = app.test_client()

    @staticmethod
    def bearer(student: Dict[str, Any]) -> Dict[str, str]:
        token = issue_token(
            student["_id"],
            student["email"],
            student["first_name"],
            student["last_name"],
            [student["role"]],
        )
        return {"Authorization": f"Bearer {token}"}

    def student_headers(self, **kwargs: Any) -> Dict[str, str]:
        return self.bearer(self.add_student(**kwargs))

    def admin_headers(self) -> Dict[str, str]:
        return self.bearer(self.add_student(role=ROLE_ADMIN))


__all__ = [
    "ApiTestCase",
    "MongoTestCase",
    "TEST_AUDIENCE",
    "TEST_ISSUER",
    "TEST_SECRET_KEY",
    "app",
]
