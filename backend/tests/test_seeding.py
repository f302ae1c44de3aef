"""Seed planning and idempotent database seeding."""

from __future__ import annotations

import unittest
from datetime import datetime, timezone

from support import MongoTestCase, app

from enrollment import seeding
from enrollment.seeding import SeedState, plan_seed, seed_database

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _fake_hash(password: str) -> str:
    return f"hashed:{password}"


class PlanSeedTestCase(unittest.TestCase):
    def test_empty_database_gets_everything(self) -> None:
        plan = plan_seed(SeedState(), now=NOW, hash_password=_fake_hash)

        self.assertEqual(1 + len(seeding.SAMPLE_STUDENTS), len(plan.students))
        self.assertEqual(len(seeding.SAMPLE_COURSES), len(plan.courses))
        self.assertEqual(len(seeding.SAMPLE_ENROLLMENTS), len(plan.enrollments))
        self.assertFalse(plan.promote_admin)

        admin = plan.students[0]
        self.assertEqual(seeding.ADMIN_ID, admin["_id"])
        self.assertEqual("Admin", admin["role"])
        self.assertEqual("hashed:Admin123!", admin["password_hash"])

    def test_courses_are_spread_over_time(self) -> None:
        plan = plan_seed(SeedState(), now=NOW, hash_password=_fake_hash)

        created = [course["created_at"] for course in plan.courses]
        self.assertEqual(sorted(created), created)
        self.assertTrue(all(value < NOW for value in created))

    def test_existing_admin_with_wrong_role_is_promoted(self) -> None:
        plan = plan_seed(
            SeedState(admin_exists=True, admin_role="Student"),
            now=NOW,
            hash_password=_fake_hash,
        )

        self.assertTrue(plan.promote_admin)
        self.assertNotIn(seeding.ADMIN_ID, [s["_id"] for s in plan.students])

    def test_populated_catalog_is_left_alone(self) -> None:
        plan = plan_seed(
            SeedState(has_courses=True), now=NOW, hash_password=_fake_hash
        )

        self.assertEqual([], plan.courses)
        # Sample enrollments need the sample courses to exist.
        self.assertEqual([], plan.enrollments)

    def test_complete_state_plans_nothing(self) -> None:
        state = SeedState(
            admin_exists=True,
            admin_role="Admin",
            student_ids=frozenset(row[0] for row in seeding.SAMPLE_STUDENTS),
            student_emails=frozenset(row[1] for row in seeding.SAMPLE_STUDENTS),
            course_ids=frozenset(row[0] for row in seeding.SAMPLE_COURSES),
            has_courses=True,
            enrollment_ids=frozenset(row[0] for row in seeding.SAMPLE_ENROLLMENTS),
        )

        self.assertTrue(plan_seed(state, now=NOW, hash_password=_fake_hash).empty)


class SeedDatabaseTestCase(MongoTestCase):
    def test_seeding_twice_is_idempotent(self) -> None:
        first = seed_database(now=NOW)
        second = seed_database(now=NOW)

        self.assertEqual(
            {
                "students": 1 + len(seeding.SAMPLE_STUDENTS),
                "courses": len(seeding.SAMPLE_COURSES),
                "enrollments": len(seeding.SAMPLE_ENROLLMENTS),
            },
            first,
        )
        self.assertEqual({"students": 0, "courses": 0, "enrollments": 0}, second)
        self.assertEqual(1 + len(seeding.SAMPLE_STUDENTS), self.students.count_documents({}))
        self.assertEqual(len(seeding.SAMPLE_ENROLLMENTS), self.enrollments.count_documents({}))

    def test_seat_counters_match_enrollment_rows(self) -> None:
        seed_database(now=NOW)

        for course in self.courses.find({}):
            with self.subTest(course=course["name"]):
                rows = self.enrollments.count_documents({"course_id": course["_id"]})
                self.assertEqual(rows, course["seats_taken"])

    def test_seeded_accounts_can_log_in(self) -> None:
        seed_database(now=NOW)

        client = app.test_client()
        admin = client.post(
            "/api/auth/login", json={"email": "admin@example.com", "password": "Admin123!"}
        )
        student = client.post(
            "/api/auth/login",
            json={"email": "john.doe@example.com", "password": "Student123!"},
        )

        self.assertEqual(200, admin.status_code)
        self.assertEqual(200, student.status_code)

    def test_demoted_admin_is_restored(self) -> None:
        seed_database(now=NOW)
        self.students.update_one({"_id": seeding.ADMIN_ID}, {"$set": {"role": "Student"}})

        seed_database(now=NOW)

        self.assertEqual("Admin", self.students.find_one({"_id": seeding.ADMIN_ID})["role"])

    def test_existing_catalog_is_not_extended(self) -> None:
        self.add_course("Local course")

        summary = seed_database(now=NOW)

        self.assertEqual(0, summary["courses"])
        self.assertEqual(0, summary["enrollments"])
        self.assertEqual(1, self.courses.count_documents({}))


if __name__ == "__main__":
    unittest.main()
