"""Tests for selling-price advice."""

from __future__ import annotations

import pytest

from landedcost.models import LineItem, ShipmentAggregate, ShipmentTotals, TaxBreakdown
from landedcost.pricing import MarginGrade, PricingAdvisor, PricingFlag, grade_margin


def _totals(fob: float = 1_000_000, duty: float = 1_000_000, units: int = 100, items: int = 1) -> ShipmentTotals:
    return ShipmentTotals(
        fob_total=fob,
        freight_total=0,
        insurance_total=0,
        flat_fees_total=0,
        item_count=items,
        total_units=units,
        total_weight=0,
        total_declared_value=fob,
        total_landed_value=fob,
        component_totals={"duty": duty},
    )


class TestAdvise:
    def test_coefficients(self):
        result = PricingAdvisor().advise(ShipmentAggregate(fob_total=1_000_000), _totals(), 30)

        assert result.duty_coefficient == pytest.approx(2.0)
        assert result.net_of_vat_coefficient == pytest.approx(1.695, abs=1e-3)
        assert result.unit_declared_value == pytest.approx(10_000)
        assert result.unit_net_cost == pytest.approx(16_949.15, abs=0.01)
        assert result.unit_selling_price == pytest.approx(26_000)
        assert result.total_revenue == pytest.approx(2_600_000)
        assert result.total_profit == pytest.approx(600_000)
        assert result.is_complete

    def test_selling_price_grows_with_margin(self):
        advisor = PricingAdvisor()
        shipment = ShipmentAggregate(fob_total=1_000_000)
        prices = [advisor.advise(shipment, _totals(), margin).unit_selling_price for margin in (0, 10, 20, 30, 50)]
        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_company_coefficient(self):
        advisor = PricingAdvisor()
        shipment = ShipmentAggregate(fob_total=1_000_000)
        assert advisor.advise(shipment, _totals(), 30, company_coefficient=1.1).unit_selling_price == pytest.approx(
            28_600
        )
        # non-positive coefficients are neutral
        assert advisor.advise(shipment, _totals(), 30, company_coefficient=0).unit_selling_price == pytest.approx(
            26_000
        )

    def test_zero_fob_flags_undefined_ratio(self):
        result = PricingAdvisor().advise(ShipmentAggregate(fob_total=0), _totals(fob=0, duty=10), 30)
        assert PricingFlag.UNDEFINED_RATIO in result.flags
        assert result.duty_coefficient == 0
        assert result.unit_selling_price == 0
        assert not result.is_complete

    def test_units_fall_back_to_item_count(self):
        result = PricingAdvisor().advise(ShipmentAggregate(fob_total=900), _totals(fob=900, duty=0, units=0, items=3), 0)
        assert result.total_units == 3
        assert result.unit_declared_value == pytest.approx(300)

    def test_no_units_flags_undefined_units(self):
        result = PricingAdvisor().advise(ShipmentAggregate(fob_total=900), _totals(fob=900, units=0, items=0), 30)
        assert result.flags == (PricingFlag.UNDEFINED_UNITS,)
        assert result.total_revenue == 0


class TestLineMargins:
    @pytest.fixture
    def lines(self):
        items = [LineItem(f"C{i}", f"Article {i}", quantity=1) for i in range(3)]
        breakdowns = [
            TaxBreakdown(classification_code=f"C{i}", quantity=1, applied_duty_rate=0, unit_base_cost=100)
            for i in range(3)
        ]
        return items, breakdowns

    def test_default_and_custom_coefficients(self, lines):
        items, breakdowns = lines
        margins = PricingAdvisor().line_margins(items, breakdowns, {1: 1.2, 2: 1.1})

        assert [m.unit_selling_price for m in margins] == pytest.approx([130, 120, 110])
        assert margins[0].margin_pct == pytest.approx(23.077, abs=1e-3)
        assert [m.grade for m in margins] == [MarginGrade.EXCELLENT, MarginGrade.ACCEPTABLE, MarginGrade.CRITICAL]

    @pytest.mark.parametrize(
        "margin, grade",
        [(23.0, MarginGrade.EXCELLENT), (16.0, MarginGrade.ACCEPTABLE), (15.99, MarginGrade.CRITICAL)],
    )
    def test_grade_boundaries(self, margin, grade):
        assert grade_margin(margin) is grade


def test_margin_grid_uses_average_unit_cost():
    grid = PricingAdvisor().margin_grid(_totals())
    assert len(grid) == 8
    assert grid[0].margin_pct == 15
    assert grid[0].unit_price == pytest.approx(20_000 * 1.18)
    assert grid[-1].unit_price == pytest.approx(40_000)
