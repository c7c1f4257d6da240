from __future__ import annotations

import math

import pytest

from woo_sync.models.product_data import NOT_AVAILABLE, RowValidationError, is_blank
from woo_sync.services.row_mapper import format_number, format_price, map_row


def test_map_row_keys_and_fields(make_row) -> None:
    product = map_row(make_row())

    assert product.sku == "X100"
    assert product.item_number == "X100-A"
    [name] = product.master.fields
    assert (name.name, name.payload_value()) == ("name", "Test Compound")
    [price, weight] = product.variation.fields
    assert (price.name, price.payload_value()) == ("regular_price", "19.50")
    assert weight.name == "weight" and not weight.required
    [purity] = product.variation.meta_data
    assert (purity.key, purity.payload_value()) == ("_purity", "99%")
    assert product.variation.attribute.payload_value() == "X100-A"


def test_numeric_keys_render_without_decimal(make_row) -> None:
    product = map_row(make_row(SKU=4711.0, **{"Item #": "4711-1"}))
    assert product.sku == "4711"
    product.validate_required(strict_item_numbers=True)


def test_attribute_mapping(make_row) -> None:
    product = map_row(make_row(**{"PEG Length": 4.0, "Full Name": None}))
    attrs = {a.name: a for a in product.master.attributes}

    assert [a.position for a in product.master.attributes] == list(range(1, 12))
    assert attrs["PEG-Length"].payload_value() == "4"
    assert attrs["PEG-Length"].visible is False
    assert attrs["Functional Group"].visible is False
    assert attrs["CAS Number"].visible is True
    assert attrs["Full Name"].effective_value == "Test Compound"
    assert attrs["Appearance"].payload_value() == NOT_AVAILABLE
    assert attrs["CAS Number"].fallback is None


def test_mapping_never_fails_on_missing_values() -> None:
    product = map_row({})
    assert product.sku == ""
    assert product.item_number == ""
    with pytest.raises(RowValidationError):
        product.validate_required()


def test_weight_is_formatted_when_present(make_row) -> None:
    product = map_row(make_row(**{"Weight (g)": 25.0}))
    assert product.variation.fields[1].payload_value() == "25"


def test_required_payload_value_raises(make_row) -> None:
    product = map_row(make_row(Purity=None))
    with pytest.raises(RowValidationError, match="_purity"):
        product.variation.meta_data[0].payload_value()
    with pytest.raises(RowValidationError, match="_purity"):
        product.validate_required()


@pytest.mark.parametrize("value", [None, "", "   ", math.nan, 0, False])
def test_is_blank(value) -> None:
    assert is_blank(value)


@pytest.mark.parametrize("value", ["x", 0.5, 1, "0"])
def test_is_not_blank(value) -> None:
    assert not is_blank(value)


def test_formatters() -> None:
    assert format_price(19.5) == "19.50"
    assert format_price("7") == "7.00"
    assert format_number(100.0) == "100"
    assert format_number(2.5) == "2.5"
    assert format_number(" 98% ") == "98%"
