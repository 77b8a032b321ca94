"""Tests for freight and insurance proration."""

from __future__ import annotations

import pytest

from landedcost.errors import ValidationError
from landedcost.models import LineItem, ShipmentAggregate
from landedcost.tariff.allocation import CostAllocator, allocate


def _item(code: str = "1006300000", quantity: int = 1, weight: float = 1.0, value: float = 100.0) -> LineItem:
    return LineItem(code, f"item {code}", quantity=quantity, unit_weight=weight, unit_declared_value=value)


class TestProration:
    def test_identical_lines_split_in_halves(self):
        shipment = ShipmentAggregate(fob_total=1_000_000, freight_total=150_000, insurance_total=10_000)
        items = [_item("A", 10, 5, 50_000), _item("B", 10, 5, 50_000)]

        results = CostAllocator().allocate(shipment, items)

        for result in results:
            assert result.prorated_freight == pytest.approx(75_000)
            assert result.prorated_insurance == pytest.approx(5_000)
            assert result.landed_value == pytest.approx(580_000)
            assert result.unit_landed_value == pytest.approx(58_000)

    def test_freight_follows_weight_insurance_follows_value(self):
        shipment = ShipmentAggregate(fob_total=400, freight_total=100, insurance_total=40)
        items = [_item("A", 1, 30, 100), _item("B", 1, 10, 300)]

        heavy, light = allocate(shipment, items)

        assert heavy.prorated_freight == pytest.approx(75)
        assert light.prorated_freight == pytest.approx(25)
        assert heavy.prorated_insurance == pytest.approx(10)
        assert light.prorated_insurance == pytest.approx(30)

    def test_sums_match_shipment_totals(self):
        shipment = ShipmentAggregate(fob_total=1_000, freight_total=333.33, insurance_total=77.7)
        items = [_item("A", 3, 1.7, 12), _item("B", 7, 0.4, 99), _item("C", 2, 12.5, 3)]

        results = allocate(shipment, items)

        assert sum(r.prorated_freight for r in results) == pytest.approx(333.33)
        assert sum(r.prorated_insurance for r in results) == pytest.approx(77.7)
        for item, result in zip(items, results):
            assert result.landed_value >= item.extended_declared_value

    def test_unit_figures_divide_by_quantity(self):
        shipment = ShipmentAggregate(fob_total=400, freight_total=100)
        (result,) = allocate(shipment, [_item("A", quantity=4, weight=2, value=100)])
        assert result.unit_freight == pytest.approx(25)
        assert result.unit_declared_value == pytest.approx(100)


class TestZeroTotals:
    def test_no_weight_splits_freight_equally(self):
        shipment = ShipmentAggregate(fob_total=300, freight_total=90, insurance_total=0)
        items = [_item("A", 1, 0, 100), _item("B", 5, 0, 100), _item("C", 2, 0, 100)]

        results = allocate(shipment, items)

        assert [r.prorated_freight for r in results] == pytest.approx([30, 30, 30])

    def test_no_declared_value_splits_insurance_equally(self):
        shipment = ShipmentAggregate(fob_total=0, insurance_total=50)
        results = allocate(shipment, [_item("A", 1, 1, 0), _item("B", 1, 3, 0)])
        assert [r.prorated_insurance for r in results] == pytest.approx([25, 25])

    def test_no_items_returns_empty_list(self):
        assert allocate(ShipmentAggregate(fob_total=100, freight_total=10), []) == []


class TestValidation:
    def test_negative_freight_is_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            allocate(ShipmentAggregate(fob_total=100, freight_total=-1), [_item()])
        assert excinfo.value.field == "freight_total"

    def test_bad_line_fails_before_any_result(self):
        items = [_item("A"), _item("B", quantity=0)]
        with pytest.raises(ValidationError) as excinfo:
            allocate(ShipmentAggregate(fob_total=100), items)
        assert excinfo.value.field == "quantity"

    def test_negative_declared_value_is_rejected(self):
        with pytest.raises(ValidationError) as excinfo:
            allocate(ShipmentAggregate(fob_total=100), [_item(value=-10)])
        assert excinfo.value.field == "unit_declared_value"
