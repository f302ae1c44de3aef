"""Utilities for parsing pagination and sorting query parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Tuple

from pymongo import ASCENDING, DESCENDING


class PagingParamError(ValueError):
    """Raised when pagination or sort query parameters are invalid."""


_DIRECTIONS = {"asc": ASCENDING, "desc": DESCENDING}


@dataclass
class PagingParams:
    page: int
    page_size: int
    sort: Tuple[str, int]

    @property
    def skip(self) -> int:
        return self.page * self.page_size


def _parse_int_arg(
    raw_value: str | None,
    *,
    name: str,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    if raw_value in (None, ""):
        value = default
    else:
        try:
            value = int(raw_value)
        except (TypeError, ValueError):
            raise PagingParamError(f"{name} must be an integer.") from None

    if minimum is not None and value < minimum:
        raise PagingParamError(f"{name} must be ≥ {minimum}.")
    if maximum is not None and value > maximum:
        raise PagingParamError(f"{name} must be ≤ {maximum}.")

    return value


def _parse_sort_args(
    raw_sort_by: str | None,
    raw_direction: str | None,
    *,
    allowed_fields: Mapping[str, str],
    default_sort: str,
) -> Tuple[str, int]:
    if not allowed_fields:
        raise PagingParamError("No sort fields configured.")

    direction_key = (raw_direction or "asc").strip().lower()
    if direction_key not in _DIRECTIONS:
        raise PagingParamError("sortDirection must be one of: Asc, Desc.")

    field_key = (raw_sort_by or "").strip() or default_sort
    if field_key not in allowed_fields:
        raise PagingParamError(
            "sortBy must be one of: " + ", ".join(sorted(allowed_fields)) + "."
        )

    return allowed_fields[field_key], _DIRECTIONS[direction_key]


def parse_paging_params(
    args: Mapping[str, str],
    *,
    default_page: int = 0,
    default_page_size: int = 10,
    max_page_size: int = 100,
    allowed_sort_fields: Mapping[str, str],
    default_sort: str,
) -> PagingParams:
    """Parse zero-based paging and sort parameters from a request args mapping."""

    page = _parse_int_arg(
        args.get("page"),
        name="page",
        default=default_page,
        minimum=0,
    )

    page_size = _parse_int_arg(
        args.get("pageSize"),
        name="pageSize",
        default=default_page_size,
        minimum=1,
        maximum=max_page_size,
    )

    sort = _parse_sort_args(
        args.get("sortBy"),
        args.get("sortDirection"),
        allowed_fields=allowed_sort_fields,
        default_sort=default_sort,
    )

    return PagingParams(page=page, page_size=page_size, sort=sort)
