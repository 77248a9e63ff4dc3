"""
Unit tests for line item arithmetic and normalization.
"""

import pytest

from utils.line_items import (
    get_line_item_total,
    get_line_items_subtotal,
    normalize_job_line_items,
    to_number,
)


class TestToNumber:
    @pytest.mark.parametrize("value, expected", [(3, 3.0), ("12.5", 12.5), (0.25, 0.25)])
    def test_numbers(self, value, expected):
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("inf"), "nan", [1]])
    def test_junk_is_zero(self, value):
        assert to_number(value) == 0.0


class TestTotals:
    def test_item_total(self):
        assert get_line_item_total({"quantity": "2", "unit_price": "150"}) == 300.0

    def test_item_with_missing_price(self):
        assert get_line_item_total({"quantity": 2}) == 0.0

    def test_non_dict_item(self):
        assert get_line_item_total("junk") == 0.0

    def test_subtotal(self):
        items = [
            {"quantity": 1, "unit_price": 450},
            {"quantity": 2, "unit_price": "35.5"},
            {"quantity": "x", "unit_price": 10},
        ]
        assert get_line_items_subtotal(items) == 521.0

    def test_subtotal_of_non_list(self):
        assert get_line_items_subtotal(None) == 0.0
        assert get_line_items_subtotal({"quantity": 1}) == 0.0


class TestNormalize:
    def test_defaults_are_filled(self):
        [item] = normalize_job_line_items([{"description": None}])

        assert len(item["id"]) == 36
        assert item["description"] == ""
        assert item["quantity"] == 1
        assert item["unit_price"] == ""

    def test_existing_values_are_kept(self):
        raw = [{"id": "a1", "description": "Drain cleaning", "quantity": 2, "unit_price": 150}]
        assert normalize_job_line_items(raw) == raw

    def test_non_dict_entries_become_blank_items(self):
        items = normalize_job_line_items(["junk"])
        assert items[0]["description"] == ""

    def test_non_list_input(self):
        assert normalize_job_line_items("[]") == []
        assert normalize_job_line_items(None) == []

    def test_fresh_ids_are_unique(self):
        items = normalize_job_line_items([{}, {}])
        assert items[0]["id"] != items[1]["id"]
