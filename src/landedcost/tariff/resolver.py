"""Per-line tariff resolution.

Each tariff component is computed on one of two bases:

  declared value (FOB)  : statistical levy (RSTA), community solidarity levy (PCS),
                          accompaniment levy (PUA), competitiveness levy (PCC)
  landed value (CAF)    : duty, regularization fee (RRR), price-control fee (RCP),
                          VAT, special beverage tax (TSB), slaughter tax (TAB)

Duty uses the schedule's cumulative rate with VAT when one is set, then the
cumulative rate without VAT, then the plain duty rate. A cumulative rate
already covers the levies, VAT and the beverage and slaughter taxes; on
plain-rate lines they are paid on top of the duty. A code missing from the
schedule resolves to zero tax with an ``unmapped-classification`` note so the
line still shows up in reports.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from landedcost.errors import ValidationError
from landedcost.models import (
    UNMAPPED_CLASSIFICATION,
    AllocationResult,
    LineItem,
    ShipmentAggregate,
    ShipmentTotals,
    TaxBreakdown,
    TaxComponent,
)
from landedcost.tariff.schedule import TariffRow, TariffSchedule

logger = logging.getLogger(__name__)

DECLARED_VALUE_COMPONENTS: Dict[TaxComponent, str] = {
    TaxComponent.STATISTICAL_LEVY: "statistical_levy",
    TaxComponent.COMMUNITY_SOLIDARITY_LEVY: "community_solidarity_levy",
    TaxComponent.ACCOMPANIMENT_LEVY: "accompaniment_levy",
    TaxComponent.COMPETITIVENESS_LEVY: "competitiveness_levy",
}

LANDED_VALUE_COMPONENTS: Dict[TaxComponent, str] = {
    TaxComponent.REGULARIZATION_FEE: "regularization_fee",
    TaxComponent.PRICE_CONTROL_FEE: "price_control_fee",
    TaxComponent.VAT: "vat_rate",
    TaxComponent.SPECIAL_BEVERAGE_TAX: "special_beverage_tax",
    TaxComponent.SLAUGHTER_TAX: "slaughter_tax",
}

ScheduleLookup = Union[TariffSchedule, Callable[[str], Optional[TariffRow]]]


def resolve_duty_rate(row: TariffRow, *, include_vat: bool = True) -> Tuple[float, bool]:
    """Return the duty rate and whether it is one of the cumulative rates.

    A cumulative rate counts as set only when it is present and non-zero.
    """

    candidates = [row.cumulative_rate_without_vat]
    if include_vat:
        candidates.insert(0, row.cumulative_rate_with_vat)
    for rate in candidates:
        if rate:
            return rate, True
    return row.duty_rate, False


def effective_duty_rate(row: TariffRow, *, include_vat: bool = True) -> float:
    """Return the rate applied to landed value for the duty component."""

    return resolve_duty_rate(row, include_vat=include_vat)[0]


class TariffResolver:
    """Resolves a line's tax breakdown from its allocation and tariff row."""

    def __init__(self, *, include_vat: bool = True) -> None:
        self.include_vat = include_vat

    def resolve(
        self,
        item: LineItem,
        allocation: AllocationResult,
        row: Optional[TariffRow],
    ) -> TaxBreakdown:
        item.validate()
        if allocation.quantity != item.quantity:
            raise ValidationError(
                "quantity",
                allocation.quantity,
                f"allocation quantity does not match line quantity {item.quantity}",
            )

        unit_base_cost = allocation.unit_declared_value + allocation.unit_freight + allocation.unit_insurance

        if row is None:
            logger.warning(
                "Classification %s (%s) not found in tariff schedule; resolving to zero tax",
                item.classification_code,
                item.designation,
            )
            return TaxBreakdown(
                classification_code=item.classification_code,
                quantity=item.quantity,
                applied_duty_rate=0.0,
                unit_base_cost=unit_base_cost,
                notes=(UNMAPPED_CLASSIFICATION,),
            )

        declared = allocation.extended_declared_value
        landed = allocation.landed_value
        duty_rate, cumulative = resolve_duty_rate(row, include_vat=self.include_vat)

        amounts: Dict[str, float] = {TaxComponent.DUTY.value: landed * duty_rate / 100.0}
        for component, rate_field in DECLARED_VALUE_COMPONENTS.items():
            amounts[component.value] = declared * getattr(row, rate_field) / 100.0
        for component, rate_field in LANDED_VALUE_COMPONENTS.items():
            amounts[component.value] = landed * getattr(row, rate_field) / 100.0
        if not self.include_vat:
            amounts[TaxComponent.VAT.value] = 0.0

        logger.debug(
            "Resolved %s x%d: landed=%.2f duty_rate=%.2f%% duty=%.2f",
            item.classification_code,
            item.quantity,
            landed,
            duty_rate,
            amounts[TaxComponent.DUTY.value],
        )
        return TaxBreakdown(
            classification_code=item.classification_code,
            quantity=item.quantity,
            applied_duty_rate=duty_rate,
            unit_base_cost=unit_base_cost,
            cumulative_rate=cumulative,
            **amounts,
        )

    def resolve_all(
        self,
        items: Sequence[LineItem],
        allocations: Sequence[AllocationResult],
        schedule: ScheduleLookup,
    ) -> List[TaxBreakdown]:
        """Resolve every line against ``schedule`` (a TariffSchedule or a lookup callable)."""

        if len(items) != len(allocations):
            raise ValidationError(
                "allocations",
                len(allocations),
                f"expected one allocation per line item ({len(items)})",
            )
        lookup = schedule.lookup if isinstance(schedule, TariffSchedule) else schedule
        return [
            self.resolve(item, allocation, lookup(item.classification_code))
            for item, allocation in zip(items, allocations)
        ]


def summarize(
    shipment: ShipmentAggregate,
    items: Sequence[LineItem],
    allocations: Sequence[AllocationResult],
    breakdowns: Sequence[TaxBreakdown],
) -> ShipmentTotals:
    """Aggregate per-line results into shipment totals."""

    component_totals = {
        component.value: sum(breakdown.amount(component) for breakdown in breakdowns)
        for component in TaxComponent
    }
    unmapped: List[str] = []
    for breakdown in breakdowns:
        if breakdown.is_unmapped and breakdown.classification_code not in unmapped:
            unmapped.append(breakdown.classification_code)

    return ShipmentTotals(
        fob_total=shipment.fob_total,
        freight_total=shipment.freight_total,
        insurance_total=shipment.insurance_total,
        flat_fees_total=shipment.flat_fees_total,
        item_count=len(items),
        total_units=sum(item.quantity for item in items),
        total_weight=sum(item.extended_weight for item in items),
        total_declared_value=sum(item.extended_declared_value for item in items),
        total_landed_value=sum(allocation.landed_value for allocation in allocations),
        component_totals=component_totals,
        standalone_taxes=sum(breakdown.standalone_total for breakdown in breakdowns),
        unmapped_codes=tuple(unmapped),
    )
