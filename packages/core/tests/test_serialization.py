from __future__ import annotations

import enum
from decimal import Decimal
from uuid import UUID

import pytest
from pydantic import BaseModel

from esdoc_core.serialization import (
    MAX_SAFE_INTEGER,
    parse_position,
    to_document,
    to_document_value,
)


class Colour(enum.Enum):
    RED = "red"


class ProductItem(BaseModel):
    product_id: UUID
    quantity: int
    unit_price: Decimal
    note: str | None = None


def test_none_entries_are_dropped_from_mappings() -> None:
    assert to_document({"a": 1, "b": None, "c": {"d": None, "e": [None, 2]}}) == {
        "a": 1,
        "c": {"e": [None, 2]},
    }


def test_unsafe_integers_become_strings() -> None:
    assert to_document_value(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    assert to_document_value(MAX_SAFE_INTEGER + 1) == str(MAX_SAFE_INTEGER + 1)
    assert to_document_value(-(MAX_SAFE_INTEGER + 1)) == str(-(MAX_SAFE_INTEGER + 1))


def test_booleans_and_enums() -> None:
    assert to_document_value(True) is True
    assert to_document_value(Colour.RED) == "red"


def test_pydantic_models_dump_in_json_mode() -> None:
    item = ProductItem(
        product_id=UUID("12345678-1234-5678-1234-567812345678"),
        quantity=2,
        unit_price=Decimal("1.50"),
    )

    assert to_document(item) == {
        "product_id": "12345678-1234-5678-1234-567812345678",
        "quantity": 2,
        "unit_price": "1.50",
    }


def test_tuples_become_lists() -> None:
    assert to_document_value((1, UUID(int=0))) == [
        1,
        "00000000-0000-0000-0000-000000000000",
    ]


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, 0), (42, 42), ("7", 7), (" 12 ", 12), (str(2**60), 2**60)],
)
def test_parse_position(value: object, expected: int) -> None:
    assert parse_position(value) == expected


@pytest.mark.parametrize("value", [True, None, "abc", "1.5", 1.0])
def test_parse_position_rejects_non_positions(value: object) -> None:
    with pytest.raises(ValueError):
        parse_position(value)


def test_big_integers_can_be_kept() -> None:
    value = {"big": 2**60, "nested": [{"big": -(2**60)}], "gone": None}

    assert to_document(value, big_ints_as_strings=False) == {
        "big": 2**60,
        "nested": [{"big": -(2**60)}],
    }
