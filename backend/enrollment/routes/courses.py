"""Course catalog endpoints."""

from __future__ import annotations

from flask import Blueprint, jsonify, request, url_for

from .. import catalog
from ..db import serialize_course, serialize_roster_entry
from ..enrollments import list_course_roster
from ..errors import domain_problem, problem, validation_problem
from ..utils.paging import PagingParamError, parse_paging_params
from ..validation import COURSE_RULES, validate
from .auth import require_policy

courses_bp = Blueprint("courses", __name__, url_prefix="/api/courses")


def _course_dto(document):
    return serialize_course(document, catalog.count_enrollments(document["_id"]))


@courses_bp.get("")
def list_courses():
    try:
        paging = parse_paging_params(
            request.args,
            allowed_sort_fields=catalog.SORT_FIELDS,
            default_sort=catalog.DEFAULT_SORT,
        )
    except PagingParamError as exc:
        return problem("Invalid paging parameters", 400, str(exc))

    documents, total = catalog.list_courses(paging, request.args.get("searchString"))
    counts = catalog.enrollment_counts([doc["_id"] for doc in documents])

    return jsonify(
        {
            "items": [serialize_course(doc, counts[doc["_id"]]) for doc in documents],
            "totalItems": total,
        }
    )


@courses_bp.get("/<course_id>")
def get_course(course_id: str):
    document = catalog.get_course(course_id)
    if document is None:
        return problem("Course not found", 404)
    return jsonify(_course_dto(document))


@courses_bp.post("")
@require_policy("CanManageCourses")
def create_course():
    cleaned, errors = validate(request.get_json(silent=True), COURSE_RULES)
    if errors:
        return validation_problem(errors)

    document = catalog.create_course(
        cleaned["name"], cleaned["description"], cleaned["capacity"]
    )
    response = jsonify(serialize_course(document, 0))
    response.status_code = 201
    response.headers["Location"] = url_for(".get_course", course_id=document["_id"])
    return response


@courses_bp.put("/<course_id>")
@require_policy("CanManageCourses")
def update_course(course_id: str):
    cleaned, errors = validate(request.get_json(silent=True), COURSE_RULES)
    if errors:
        return validation_problem(errors)

    result = catalog.update_course(
        course_id, cleaned["name"], cleaned["description"], cleaned["capacity"]
    )
    if not result.ok:
        return domain_problem(result.error)
    return jsonify(_course_dto(result.value))


@courses_bp.delete("/<course_id>")
@require_policy("CanManageCourses")
def delete_course(course_id: str):
    result = catalog.delete_course(course_id)
    if not result.ok:
        return domain_problem(result.error)
    return "", 204


@courses_bp.get("/<course_id>/enrollments")
@require_policy("CanManageCourses")
def course_roster(course_id: str):
    result = list_course_roster(course_id)
    if not result.ok:
        return domain_problem(result.error)
    return jsonify(
        [serialize_roster_entry(enrollment, student) for enrollment, student in result.value]
    )


__all__ = ["courses_bp"]
