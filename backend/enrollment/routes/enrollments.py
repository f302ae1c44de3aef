"""Enrollment endpoints for students and the admin roster overview."""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from .. import enrollments
from ..db import (
    serialize_course,
    serialize_enroll_response,
    serialize_enrollment,
    serialize_roster_entry,
)
from ..errors import domain_problem, validation_problem
from ..validation import ENROLL_RULES, validate
from .auth import require_policy, token_required

enrollments_bp = Blueprint("enrollments", __name__, url_prefix="/api/enrollments")


@enrollments_bp.get("/me")
@token_required
def my_enrollments():
    rows = enrollments.list_student_enrollments(g.student_id)
    return jsonify([serialize_enrollment(enrollment, course) for enrollment, course in rows])


@enrollments_bp.post("")
@require_policy("CanEnroll")
def enroll():
    cleaned, errors = validate(request.get_json(silent=True), ENROLL_RULES)
    if errors:
        return validation_problem(errors)

    result = enrollments.enroll(g.student_id, cleaned["courseId"])
    if not result.ok:
        return domain_problem(result.error)
    return jsonify(serialize_enroll_response(result.value))


@enrollments_bp.delete("/<enrollment_id>")
@require_policy("CanEnroll")
def deregister(enrollment_id: str):
    result = enrollments.deregister(enrollment_id, g.student_id)
    if not result.ok:
        return domain_problem(result.error)
    return "", 204


@enrollments_bp.get("/admin/courses")
@require_policy("CanManageCourses")
def courses_with_enrollments():
    payload = []
    for course, roster in enrollments.list_courses_with_rosters():
        entry = serialize_course(course, len(roster))
        entry["enrollments"] = [
            serialize_roster_entry(enrollment, student) for enrollment, student in roster
        ]
        payload.append(entry)
    return jsonify(payload)


__all__ = ["enrollments_bp"]
