"""
Tests for header based column mapping.

Header sets are modeled on spreadsheet exports people keep for shared
household expenses.
"""

import pytest

from expense_import.models import FieldMapping
from expense_import.schema_mapper import infer_mapping


class TestInferMapping:
    def test_date_total_category(self):
        mapping = infer_mapping(["Date", "Total", "Category"])

        assert mapping.date == "Date"
        assert mapping.amount == "Total"
        assert mapping.category == "Category"
        assert mapping.breakdown is None
        assert mapping.payment_method is None
        assert mapping.notes is None
        assert mapping.paid_by is None
        assert mapping.app is None

    def test_full_expense_sheet(self):
        headers = [
            "Date",
            "Breakdown",
            "Amount",
            "Expense Type",
            "Payment Method",
            "Description",
            "Paid By",
            "Source",
        ]
        mapping = infer_mapping(headers)

        assert mapping.model_dump() == {
            "date": "Date",
            "amount": "Amount",
            "breakdown": "Breakdown",
            "category": "Expense Type",
            "payment_method": "Payment Method",
            "notes": "Description",
            "paid_by": "Paid By",
            "app": "Source",
        }

    def test_case_and_whitespace_are_ignored(self):
        mapping = infer_mapping(["  DATE ", "TOTAL", "person", "APP"])

        # Original header text is kept so rows can be looked up by it
        assert mapping.date == "  DATE "
        assert mapping.amount == "TOTAL"
        assert mapping.paid_by == "person"
        assert mapping.app == "APP"

    def test_later_header_wins_for_same_role(self):
        mapping = infer_mapping(["Amount", "Price", "Notes", "Desc"])

        assert mapping.amount == "Price"
        assert mapping.notes == "Desc"

    def test_header_can_satisfy_several_roles(self):
        mapping = infer_mapping(["Cost Type"])

        assert mapping.amount == "Cost Type"
        assert mapping.category == "Cost Type"

    def test_breakdown_is_not_an_amount(self):
        mapping = infer_mapping(["Breakdown"])

        assert mapping.breakdown == "Breakdown"
        assert mapping.amount is None

    def test_exact_matches_only_where_required(self):
        mapping = infer_mapping(["Date Paid", "Totals", "Application", "Personal"])

        assert mapping.date is None
        assert mapping.amount is None
        assert mapping.app is None
        assert mapping.paid_by is None

    @pytest.mark.parametrize(
        "header,role",
        [
            ("Paid with", "payment_method"),
            ("Spender", "paid_by"),
            ("Unit price", "amount"),
            ("Transaction type", "category"),
            ("Notes", "notes"),
            ("Data source", "app"),
        ],
    )
    def test_keyword_rules(self, header, role):
        mapping = infer_mapping([header])
        assert getattr(mapping, role) == header

    def test_no_headers(self):
        assert infer_mapping([]) == FieldMapping()


class TestFieldMapping:
    def test_assign_and_clear(self):
        mapping = infer_mapping(["Date", "Total", "Breakdown"])

        mapping.assign("amount", "Breakdown")
        assert mapping.amount == "Breakdown"

        mapping.clear("breakdown")
        assert mapping.breakdown is None

    def test_none_sentinel_clears_role(self):
        mapping = infer_mapping(["Date", "Total"])

        mapping.assign("amount", "None")
        assert mapping.amount is None

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            FieldMapping().assign("currency", "Currency")

    def test_missing_roles(self):
        assert FieldMapping().missing_roles() == ["date", "amount"]
        assert FieldMapping(breakdown="Breakdown").missing_roles() == ["date"]
        assert FieldMapping(amount="Total").missing_roles(use_common_date=True) == []
        assert FieldMapping(date="Date", amount="Total").missing_roles() == []

    def test_sentinel_in_constructor(self):
        assert FieldMapping(breakdown="none", amount="").model_dump()["breakdown"] is None
