"""Selling-price advice from the shipment's landed cost.

    duty coefficient (y)   = total cost / FOB
    net-of-VAT coefficient = y / (1 + VAT%)
    unit declared value    = FOB / total units
    unit net cost          = unit declared value * net-of-VAT coefficient
    unit selling price     = unit net cost * (1 + margin%) * company coefficient * (1 + VAT%)

Every division is guarded: a zero denominator degrades the dependent figures
to zero and raises a flag on the result instead of an exception, so an
incomplete simulation still renders.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Mapping, Optional, Sequence

from landedcost.models import LineItem, ShipmentAggregate, ShipmentTotals, TaxBreakdown

logger = logging.getLogger(__name__)

DEFAULT_VAT_RATE_PCT = 18.0
DEFAULT_LINE_COEFFICIENT = 1.3

# (target margin %, multiplier) pairs offered as quick simulations
STANDARD_MARGINS: tuple[tuple[float, float], ...] = (
    (15.0, 1.18),
    (20.0, 1.25),
    (25.0, 1.33),
    (30.0, 1.43),
    (35.0, 1.54),
    (40.0, 1.67),
    (45.0, 1.82),
    (50.0, 2.00),
)


class PricingFlag(str, Enum):
    UNDEFINED_RATIO = "undefined-ratio"   # FOB total is zero
    UNDEFINED_UNITS = "undefined-units"   # no units and no lines to price


class MarginGrade(str, Enum):
    EXCELLENT = "excellent"
    ACCEPTABLE = "acceptable"
    CRITICAL = "critical"


@dataclass(frozen=True)
class PricingResult:
    duty_coefficient: float
    net_of_vat_coefficient: float
    total_units: int
    unit_declared_value: float
    unit_net_cost: float
    unit_selling_price: float
    total_revenue: float
    total_cost: float
    total_profit: float
    desired_margin_pct: float
    company_coefficient: float
    vat_rate_pct: float
    flags: tuple[PricingFlag, ...] = ()

    @property
    def is_complete(self) -> bool:
        return not self.flags


@dataclass(frozen=True)
class LineMargin:
    classification_code: str
    designation: str
    unit_cost_price: float
    coefficient: float
    unit_selling_price: float
    margin_pct: float
    grade: MarginGrade


@dataclass(frozen=True)
class MarginSimulation:
    margin_pct: float
    coefficient: float
    unit_price: float


def grade_margin(margin_pct: float) -> MarginGrade:
    if margin_pct >= 23.0:
        return MarginGrade.EXCELLENT
    if margin_pct >= 16.0:
        return MarginGrade.ACCEPTABLE
    return MarginGrade.CRITICAL


class PricingAdvisor:
    """Computes multiplier coefficients and a suggested selling price."""

    def advise(
        self,
        shipment: ShipmentAggregate,
        totals: ShipmentTotals,
        desired_margin_pct: float,
        company_coefficient: float = 1.0,
        vat_rate_pct: float = DEFAULT_VAT_RATE_PCT,
    ) -> PricingResult:
        flags: List[PricingFlag] = []
        fob_total = shipment.fob_total
        total_cost = totals.total_cost
        vat_factor = 1.0 + vat_rate_pct / 100.0
        company_factor = company_coefficient if company_coefficient > 0 else 1.0

        if fob_total > 0:
            duty_coefficient = total_cost / fob_total
        else:
            duty_coefficient = 0.0
            flags.append(PricingFlag.UNDEFINED_RATIO)
        net_of_vat_coefficient = duty_coefficient / vat_factor if vat_factor > 0 else 0.0

        units = totals.total_units if totals.total_units > 0 else totals.item_count
        if units > 0:
            unit_declared_value = fob_total / units
        else:
            unit_declared_value = 0.0
            flags.append(PricingFlag.UNDEFINED_UNITS)

        unit_net_cost = unit_declared_value * net_of_vat_coefficient
        unit_selling_price = (
            unit_net_cost * (1.0 + desired_margin_pct / 100.0) * company_factor * vat_factor
        )
        total_revenue = unit_selling_price * units

        if flags:
            logger.info("Pricing advice is partial: %s", ", ".join(flag.value for flag in flags))

        return PricingResult(
            duty_coefficient=duty_coefficient,
            net_of_vat_coefficient=net_of_vat_coefficient,
            total_units=units,
            unit_declared_value=unit_declared_value,
            unit_net_cost=unit_net_cost,
            unit_selling_price=unit_selling_price,
            total_revenue=total_revenue,
            total_cost=total_cost,
            total_profit=total_revenue - total_cost,
            desired_margin_pct=desired_margin_pct,
            company_coefficient=company_factor,
            vat_rate_pct=vat_rate_pct,
            flags=tuple(flags),
        )

    def line_margins(
        self,
        items: Sequence[LineItem],
        breakdowns: Sequence[TaxBreakdown],
        coefficients: Optional[Mapping[int, float]] = None,
    ) -> List[LineMargin]:
        """Per-line selling price at a multiplier (keyed by line index, default 1.3).

        margin % = (selling price - cost price) / selling price * 100
        """

        coefficients = coefficients or {}
        margins: List[LineMargin] = []
        for index, (item, breakdown) in enumerate(zip(items, breakdowns)):
            coefficient = coefficients.get(index) or DEFAULT_LINE_COEFFICIENT
            cost_price = breakdown.unit_cost_price
            selling_price = cost_price * coefficient
            margin_pct = (selling_price - cost_price) / selling_price * 100.0 if selling_price > 0 else 0.0
            margins.append(
                LineMargin(
                    classification_code=item.classification_code,
                    designation=item.designation,
                    unit_cost_price=cost_price,
                    coefficient=coefficient,
                    unit_selling_price=selling_price,
                    margin_pct=margin_pct,
                    grade=grade_margin(margin_pct),
                )
            )
        return margins

    def margin_grid(self, totals: ShipmentTotals) -> List[MarginSimulation]:
        """Quick simulations of the standard margins against the average unit cost."""

        units = totals.total_units if totals.total_units > 0 else totals.item_count
        average_unit_cost = totals.total_cost / units if units > 0 and totals.total_cost > 0 else 0.0
        return [
            MarginSimulation(margin_pct=margin, coefficient=coefficient, unit_price=average_unit_cost * coefficient)
            for margin, coefficient in STANDARD_MARGINS
        ]
