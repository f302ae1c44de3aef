from __future__ import annotations

import unittest

from pymongo import ASCENDING, DESCENDING

import support  # noqa: F401

from enrollment.utils.paging import PagingParamError, parse_paging_params

FIELDS = {"name": "name", "createdAt": "created_at"}


def parse(**args):
    return parse_paging_params(args, allowed_sort_fields=FIELDS, default_sort="createdAt")


class ParsePagingParamsTestCase(unittest.TestCase):
    def test_defaults(self) -> None:
        params = parse()
        self.assertEqual((0, 10, 0), (params.page, params.page_size, params.skip))
        self.assertEqual(("created_at", ASCENDING), params.sort)

    def test_skip_is_page_times_size(self) -> None:
        self.assertEqual(40, parse(page="2", pageSize="20").skip)

    def test_direction_is_case_insensitive(self) -> None:
        self.assertEqual(("name", DESCENDING), parse(sortBy="name", sortDirection="DESC").sort)
        self.assertEqual(("name", ASCENDING), parse(sortBy="name", sortDirection="Asc").sort)

    def test_bounds(self) -> None:
        self.assertEqual(100, parse(pageSize="100").page_size)
        for args in ({"page": "-1"}, {"pageSize": "0"}, {"pageSize": "101"}, {"page": "x"}):
            with self.subTest(args=args):
                with self.assertRaises(PagingParamError):
                    parse(**args)

    def test_unknown_sort_field_lists_choices(self) -> None:
        with self.assertRaises(PagingParamError) as ctx:
            parse(sortBy="created_at")
        self.assertIn("createdAt, name", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
