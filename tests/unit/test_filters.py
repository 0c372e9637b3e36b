from __future__ import annotations

import pytest

from dataaccess.domain.enums import Comparator, Direction
from dataaccess.query.plugins import (
    DateFilter,
    Filter,
    Limit,
    NumberFilter,
    Offset,
    Order,
    TextFilter,
    filter_class_for,
)

DEFAULT_MAX_LIMIT = 10


@pytest.mark.parametrize(
    ("field_type", "expected"),
    [
        ("number_natural", NumberFilter),
        ("number", NumberFilter),
        ("number_port", NumberFilter),
        ("text_date", DateFilter),
        ("date", DateFilter),
        ("text", TextFilter),
        ("structure", TextFilter),
        ("", TextFilter),
    ],
)
def test_filter_variant_follows_field_type(field_type, expected) -> None:
    assert filter_class_for(field_type) is expected
    assert type(Filter.create("f", field_type, None, 1)) is expected


@pytest.mark.parametrize(
    ("operator", "rendered"),
    [
        (Comparator.CONTAINS, "%jo%"),
        (Comparator.BEGINS, "jo%"),
        (Comparator.ENDS, "%jo"),
    ],
)
def test_like_comparators_mask_the_value(operator, rendered) -> None:
    flt = Filter.create("name", "text", operator, "jo")
    assert flt.rendered_value() == rendered
    assert flt.operator_token() == "LIKE"


def test_negated_like_comparators_compare_for_equality() -> None:
    flt = Filter.create("name", "text", "not_contains", "jo")
    assert flt.mask == ""
    assert flt.rendered_value() == "jo"
    assert flt.operator_token() == "="


def test_list_values_are_never_masked() -> None:
    flt = Filter.create("name", "text", "contains", ["a", "b"])
    assert flt.rendered_value() == ["a", "b"]


def test_unknown_operator_falls_back_to_equals() -> None:
    flt = Filter.create("age", "number", "bogus", 3)
    assert flt.operator is Comparator.EQUALS
    assert flt.operator_token() == "="


def test_variants_declare_their_comparators() -> None:
    assert TextFilter.accepts(Comparator.CONTAINS)
    assert not TextFilter.accepts(Comparator.LESS)
    assert NumberFilter.accepts(Comparator.GREATER_OR_EQUAL)
    assert not NumberFilter.accepts(Comparator.CONTAINS)
    assert not DateFilter.accepts(Comparator.BEGINS)


def test_limit_is_clamped() -> None:
    assert Limit(50).value == DEFAULT_MAX_LIMIT
    assert Limit(5).value == 5
    assert Limit(-3).value == 0
    assert Limit(7, max_limit=3).value == 3


def test_offset_never_negative() -> None:
    assert Offset(-1).value == 0
    assert Offset(4).value == 4


def test_order_direction() -> None:
    assert Order.create("name").direction is Direction.ASC
    assert Order.create("name", "desc").direction is Direction.DESC
