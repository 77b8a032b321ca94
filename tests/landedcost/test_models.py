"""Tests for the shared domain records."""

from __future__ import annotations

import math

import pytest

from landedcost.errors import LandedCostError, ValidationError
from landedcost.models import (
    Decision,
    LineItem,
    Severity,
    ShipmentAggregate,
    ShipmentTotals,
    TaxBreakdown,
    TaxComponent,
    decisions_as_dicts,
)


class TestShipmentAggregate:
    def test_landed_value_sums_fob_freight_insurance(self):
        shipment = ShipmentAggregate(fob_total=1_000_000, freight_total=150_000, insurance_total=10_000)
        assert shipment.landed_value == 1_160_000

    def test_flat_fees_total_covers_every_fee(self):
        shipment = ShipmentAggregate(
            fob_total=0,
            registration_fee=1,
            financial_fees=2,
            forwarding_fee=3,
            security_fee=4,
            miscellaneous_fees=5,
            advance_of_funds=6,
            clearance_credit=7,
            conformity_fee=8,
            customs_stamp=9,
        )
        assert shipment.flat_fees_total == 45

    @pytest.mark.parametrize("value", [-1, math.nan, math.inf, True, "10"])
    def test_validate_rejects_bad_amounts(self, value):
        shipment = ShipmentAggregate(fob_total=100, freight_total=value)
        with pytest.raises(ValidationError) as excinfo:
            shipment.validate()
        assert excinfo.value.field == "freight_total"

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            ShipmentAggregate(fob_total=-5).validate()
        assert issubclass(ValidationError, LandedCostError)


class TestLineItem:
    def test_extended_values(self):
        item = LineItem("1006300000", "Riz", quantity=4, unit_weight=2.5, unit_declared_value=100)
        assert item.extended_weight == 10
        assert item.extended_declared_value == 400

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, True])
    def test_quantity_must_be_positive_integer(self, quantity):
        item = LineItem("1006300000", "Riz", quantity=quantity)
        with pytest.raises(ValidationError) as excinfo:
            item.validate()
        assert excinfo.value.field == "quantity"

    def test_negative_unit_weight_is_named(self):
        with pytest.raises(ValidationError) as excinfo:
            LineItem("1006300000", "Riz", quantity=1, unit_weight=-1).validate()
        assert excinfo.value.field == "unit_weight"


class TestTaxBreakdown:
    def test_unit_amounts_divide_by_quantity(self):
        breakdown = TaxBreakdown(
            classification_code="X",
            quantity=4,
            applied_duty_rate=10,
            duty=40,
            vat=20,
            unit_base_cost=100,
        )
        assert breakdown.unit_amount(TaxComponent.DUTY) == 10
        assert breakdown.unit_amounts()["vat"] == 5
        assert breakdown.total == 60
        assert breakdown.unit_total == 15
        assert breakdown.unit_cost_price == 115
        assert not breakdown.is_unmapped


class TestShipmentTotals:
    def test_total_cost_uses_duty_rrr_rcp_and_flat_fees(self):
        totals = ShipmentTotals(
            fob_total=1000,
            freight_total=100,
            insurance_total=10,
            flat_fees_total=50,
            item_count=1,
            total_units=1,
            total_weight=0,
            total_declared_value=1000,
            total_landed_value=1110,
            component_totals={"duty": 200, "regularization_fee": 5, "price_control_fee": 7, "vat": 999},
        )
        assert totals.customs_duty == 200
        # VAT is already inside the cumulative duty rate
        assert totals.total_cost == 1000 + 100 + 10 + 200 + 5 + 7 + 50

    def test_missing_component_reads_as_zero(self):
        totals = ShipmentTotals(0, 0, 0, 0, 0, 0, 0, 0, 0)
        assert totals.component(TaxComponent.SLAUGHTER_TAX) == 0.0


def test_decision_as_dict_flattens_severity():
    decision = Decision("BSC", "BSC", "ADMIS A LA LEVEE DU BSC", Severity.SUCCESS, rule="security_fee")
    assert decisions_as_dicts([decision]) == [
        {
            "category": "BSC",
            "title": "BSC",
            "description": "ADMIS A LA LEVEE DU BSC",
            "severity": "success",
            "rule": "security_fee",
        }
    ]
