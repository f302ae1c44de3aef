"""Ensure protected endpoints require a bearer token with the right role."""

from __future__ import annotations

import unittest

from support import ApiTestCase

ADMIN_ENDPOINTS = [
    ("post", "/api/courses"),
    ("put", "/api/courses/course-1"),
    ("delete", "/api/courses/course-1"),
    ("get", "/api/courses/course-1/enrollments"),
    ("get", "/api/enrollments/admin/courses"),
]

STUDENT_ENDPOINTS = [
    ("post", "/api/enrollments"),
    ("delete", "/api/enrollments/enrollment-1"),
]


class PolicyRequirementTestCase(ApiTestCase):
    """Verify that guarded endpoints cannot be used anonymously or by the wrong role."""

    def _call(self, method: str, path: str, headers=None):
        http_method = getattr(self.client, method)
        request_kwargs = {"headers": headers or {}}
        if method in {"post", "put"}:
            request_kwargs["json"] = {}
        return http_method(path, **request_kwargs)

    def test_protected_endpoints_require_token(self) -> None:
        for method, path in ADMIN_ENDPOINTS + STUDENT_ENDPOINTS + [
            ("get", "/api/enrollments/me"),
            ("post", "/api/auth/provision"),
        ]:
            with self.subTest(method=method, path=path):
                response = self._call(method, path)
                self.assertEqual(401, response.status_code)
                self.assertEqual(401, response.get_json()["statusCode"])

    def test_admin_endpoints_reject_students(self) -> None:
        headers = self.student_headers()
        for method, path in ADMIN_ENDPOINTS:
            with self.subTest(method=method, path=path):
                response = self._call(method, path, headers)
                self.assertEqual(403, response.status_code)

    def test_student_endpoints_reject_admins(self) -> None:
        headers = self.admin_headers()
        for method, path in STUDENT_ENDPOINTS:
            with self.subTest(method=method, path=path):
                response = self._call(method, path, headers)
                self.assertEqual(403, response.status_code)

    def test_garbage_token_is_unauthorized(self) -> None:
        response = self.client.get(
            "/api/enrollments/me", headers={"Authorization": "Bearer not-a-jwt"}
        )
        self.assertEqual(401, response.status_code)
        self.assertEqual("Invalid token.", response.get_json()["detail"])

    def test_catalog_reads_are_public(self) -> None:
        self.assertEqual(200, self.client.get("/api/courses").status_code)
        self.assertEqual(200, self.client.get("/api/health").status_code)


if __name__ == "__main__":
    unittest.main()
