"""Proration of shipment-level freight and insurance across goods lines.

Freight follows weight: heavier lines carry more of the freight bill.
Insurance follows declared value. When the relevant total is zero the
shipment amount is split in equal shares by line count.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from landedcost.models import AllocationResult, LineItem, ShipmentAggregate

logger = logging.getLogger(__name__)


class CostAllocator:
    """Computes per-line prorated freight, insurance and landed value (CAF)."""

    def allocate(
        self,
        shipment: ShipmentAggregate,
        items: Sequence[LineItem],
    ) -> List[AllocationResult]:
        shipment.validate()
        for item in items:
            item.validate()

        if not items:
            return []

        total_weight = sum(item.extended_weight for item in items)
        total_declared_value = sum(item.extended_declared_value for item in items)
        equal_share = 1.0 / len(items)

        if total_weight <= 0 and shipment.freight_total > 0:
            logger.debug("Shipment has no declared weight; freight split equally across %d lines", len(items))
        if total_declared_value <= 0 and shipment.insurance_total > 0:
            logger.debug("Shipment has no declared value; insurance split equally across %d lines", len(items))

        results: List[AllocationResult] = []
        for item in items:
            freight_share = item.extended_weight / total_weight if total_weight > 0 else equal_share
            insurance_share = (
                item.extended_declared_value / total_declared_value
                if total_declared_value > 0
                else equal_share
            )
            prorated_freight = shipment.freight_total * freight_share
            prorated_insurance = shipment.insurance_total * insurance_share
            declared = item.extended_declared_value
            results.append(
                AllocationResult(
                    quantity=item.quantity,
                    extended_declared_value=declared,
                    prorated_freight=prorated_freight,
                    prorated_insurance=prorated_insurance,
                    landed_value=declared + prorated_freight + prorated_insurance,
                )
            )
        return results


def allocate(shipment: ShipmentAggregate, items: Sequence[LineItem]) -> List[AllocationResult]:
    """Module-level shortcut for ``CostAllocator().allocate``."""
    return CostAllocator().allocate(shipment, items)
