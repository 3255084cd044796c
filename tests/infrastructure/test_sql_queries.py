"""Tests for SQL statement construction."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.dialects import postgresql

from storeapi.application.ports import MetaFilter, QuerySpec
from storeapi.domain.exceptions import PersistenceError
from storeapi.infrastructure.sql_store import (
    build_number_query,
    build_order_query,
    build_product_query,
    build_search_query,
)


def sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def params(statement) -> dict:
    return statement.compile(dialect=postgresql.dialect()).params


class TestBuildOrderQuery:
    """Tests for build_order_query."""

    def test_default_query(self) -> None:
        """Trash is hidden and rows come newest first, one page at a time."""
        page, count = build_order_query(QuerySpec())
        text = sql(page)

        assert "orders.status !=" in text
        assert "ORDER BY orders.date_created DESC, orders.id DESC" in text
        assert "LIMIT" in text
        assert "OFFSET" not in text
        assert "trash" in params(page).values()
        assert "count(*)" in sql(count)
        assert "LIMIT" not in sql(count)

    def test_statuses_and_ids(self) -> None:
        """Status and id lists become IN clauses."""
        spec = QuerySpec(statuses=["wc-processing"], include_ids=[1, 2], exclude_ids=[3])
        text = sql(build_order_query(spec)[0])

        assert "orders.status IN" in text
        assert "orders.id IN" in text
        assert "orders.id NOT IN" in text

    def test_paging(self) -> None:
        """Offsets apply past the first page; -1 disables the limit."""
        page, _ = build_order_query(QuerySpec(page=3, per_page=20))
        assert "OFFSET" in sql(page)

        page, _ = build_order_query(QuerySpec(per_page=-1))
        assert "LIMIT" not in sql(page)

    def test_include_ordering(self) -> None:
        """orderby=include sorts by position in the include list."""
        page, _ = build_order_query(QuerySpec(include_ids=[5, 2], orderby="include"))
        assert "CASE orders.id" in sql(page)

    def test_customer_filter_uses_column(self) -> None:
        """The customer key compares the customer column directly."""
        spec = QuerySpec(meta_filters=[MetaFilter(key="_customer_user", value=5, type="NUMERIC")])
        text = sql(build_order_query(spec)[0])

        assert "orders.customer_id =" in text
        assert "order_meta" not in text

    def test_meta_filter_uses_exists(self) -> None:
        """Other keys run a correlated subquery on the meta table."""
        spec = QuerySpec(meta_filters=[MetaFilter(key="channel", value="pos")])
        page, _ = build_order_query(spec)
        text = sql(page)

        assert "EXISTS" in text
        assert "order_meta.meta_key" in text
        assert {"channel", "pos"} <= set(params(page).values())

    def test_numeric_meta_filter_casts(self) -> None:
        """Numeric comparisons cast the stored value."""
        spec = QuerySpec(meta_filters=[MetaFilter(key="weight", value=3, compare=">", type="NUMERIC")])
        assert "CAST(order_meta.meta_value AS NUMERIC)" in sql(build_order_query(spec)[0])

    def test_unsupported_comparison(self) -> None:
        """Unknown comparators are rejected."""
        spec = QuerySpec(meta_filters=[MetaFilter(key="channel", value="p", compare="REGEXP")])
        with pytest.raises(PersistenceError):
            build_order_query(spec)

    def test_date_bounds(self) -> None:
        """Date filters compare strictly."""
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        spec = QuerySpec(created_after=moment, modified_before=moment)
        text = sql(build_order_query(spec)[0])

        assert "orders.date_created >" in text
        assert "orders.date_modified <" in text


class TestLookupQueries:
    """Tests for id lookup statements."""

    def test_search_escapes_wildcards(self) -> None:
        """Search terms are bound, lower-cased and escaped."""
        statement = build_search_query("50%_OFF")

        assert "ESCAPE" in sql(statement)
        assert "%50\\%\\_off%" in params(statement).values()

    def test_numeric_search_matches_id(self) -> None:
        """Numeric terms also match the order id."""
        statement = build_search_query("42")

        assert "orders.id =" in sql(statement)
        assert 42 in params(statement).values()

    def test_number_query(self) -> None:
        """Order numbers are matched as text with a limit."""
        statement = build_number_query("12%", 10)
        text = sql(statement)

        assert "CAST(orders.id AS VARCHAR)" in text
        assert "ESCAPE" in text
        assert "LIMIT" in text
        assert "12%" in params(statement).values()
        assert "LIMIT" not in sql(build_number_query("12%", 0))

    def test_product_query(self) -> None:
        """Products match line items by product or variation id."""
        text = sql(build_product_query(10))

        assert "order_items.product_id =" in text
        assert "order_items.variation_id =" in text
        assert "DISTINCT" in text
