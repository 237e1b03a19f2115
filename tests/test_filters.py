"""
Unit tests for FilterBuilder

These tests only inspect the generated query documents; no database is used.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from bson import Decimal128

from filters import Between, Contains, ContainsAny, Equals, FilterBuilder


class TestFilterBuilder:
    """Test query construction from optional filters"""

    def test_no_filters_matches_everything(self):
        assert FilterBuilder().build() == {}

    @pytest.mark.parametrize("blank", [None, "", "   ", "\t\n"])
    def test_blank_text_filters_are_omitted(self, blank):
        """Blank inputs behave exactly like absent ones"""
        builder = (
            FilterBuilder()
            .contains("name", "name", blank)
            .contains_any("fullName", ("first_name", "last_name"), blank)
            .equals("categoryId", "category_id", blank)
        )

        assert len(builder) == 0
        assert builder.build() == {}

    def test_blank_filter_does_not_change_query(self):
        with_blank = FilterBuilder().contains("name", "name", "tea").contains("slug", "slug", "  ").build()
        without = FilterBuilder().contains("name", "name", "tea").build()

        assert with_blank == without

    def test_single_filter_is_not_wrapped(self):
        query = FilterBuilder().contains("name", "name", "Tea").build()

        assert query == {"name": {"$regex": "Tea", "$options": "i"}}

    def test_text_is_trimmed_and_escaped(self):
        query = FilterBuilder().contains("name", "name", "  1.5L (x6)  ").build()

        assert query == {"name": {"$regex": r"1\.5L\ \(x6\)", "$options": "i"}}

    def test_multiple_filters_are_and_combined_in_order(self):
        query = (
            FilterBuilder()
            .contains("name", "name", "tea")
            .flag("active", "active", True)
            .equals("categoryId", "category_id", "c1")
            .build()
        )

        assert query == {
            "$and": [
                {"name": {"$regex": "tea", "$options": "i"}},
                {"active": True},
                {"category_id": "c1"},
            ]
        }

    def test_contains_any_builds_or(self):
        query = FilterBuilder().contains_any("name", ("first_name", "last_name"), " ana ").build()

        assert query == {
            "$or": [
                {"first_name": {"$regex": "ana", "$options": "i"}},
                {"last_name": {"$regex": "ana", "$options": "i"}},
            ]
        }

    def test_equals_trims_strings(self):
        query = FilterBuilder().equals("customerId", "customer_id", "  abc123 ").build()

        assert query == {"customer_id": "abc123"}

    def test_flag_false_is_kept(self):
        assert FilterBuilder().flag("active", "active", False).build() == {"active": False}

    def test_flag_none_is_omitted(self):
        assert FilterBuilder().flag("active", "active", None).build() == {}


class TestRangeFilters:
    """Test one- and two-sided range bounds"""

    def test_lower_bound_only(self):
        query = FilterBuilder().between("price", "price", Decimal("10"), None).build()

        assert query == {"price": {"$gte": Decimal128("10")}}

    def test_upper_bound_only(self):
        query = FilterBuilder().between("price", "price", None, Decimal("99.99")).build()

        assert query == {"price": {"$lte": Decimal128("99.99")}}

    def test_both_bounds(self):
        query = FilterBuilder().between("price", "price", Decimal("1"), Decimal("5")).build()

        assert query == {"price": {"$gte": Decimal128("1"), "$lte": Decimal128("5")}}

    def test_no_bounds_is_omitted(self):
        assert FilterBuilder().between("price", "price", None, None).build() == {}

    def test_datetime_bounds_pass_through(self):
        start = datetime(2025, 1, 1, tzinfo=timezone.utc)
        end = datetime(2025, 1, 31, 23, 59, 59, 999000, tzinfo=timezone.utc)

        query = FilterBuilder().between("orderDate", "order_date", start, end).build()

        assert query == {"order_date": {"$gte": start, "$lte": end}}


class TestPredicates:
    """Test the predicate variants on their own"""

    def test_registering_same_name_replaces(self):
        builder = FilterBuilder().contains("name", "name", "tea").contains("name", "name", "coffee")

        assert builder.predicates == {"name": Contains("name", "coffee")}

    def test_predicate_queries(self):
        assert Equals("active", True).to_query() == {"active": True}
        assert Between("stock", 0, None).to_query() == {"stock": {"$gte": 0}}
        assert ContainsAny(("a",), "x").to_query() == {"$or": [{"a": {"$regex": "x", "$options": "i"}}]}
