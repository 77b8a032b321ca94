"""Evaluates the ordered decision rules over one shipment."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set, Tuple

from landedcost.decisions.criteria import DecisionCriteria
from landedcost.decisions.rules import RULES, Rule
from landedcost.models import (
    Decision,
    ShipmentAggregate,
    ShipmentContext,
    ShipmentDecisionAttributes,
    ShipmentTotals,
    TaxComponent,
)

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Runs every rule in order and drops repeated (category, title) pairs.

    Rules with a missing input attribute are skipped rather than failing, so
    a partially filled shipment still gets whatever guidance applies.
    """

    def __init__(self, rules: Sequence[Rule] = RULES) -> None:
        self.rules = tuple(rules)

    def evaluate(
        self,
        attributes: ShipmentDecisionAttributes,
        criteria: Optional[DecisionCriteria] = None,
    ) -> List[Decision]:
        criteria = criteria or DecisionCriteria()
        decisions: List[Decision] = []
        seen: Set[Tuple[str, str]] = set()
        for rule in self.rules:
            for decision in rule.evaluate(attributes, criteria):
                key = (decision.category, decision.title)
                if key in seen:
                    continue
                seen.add(key)
                decisions.append(decision)
        logger.debug("Decision rules emitted %d decisions", len(decisions))
        return decisions


def evaluate(
    attributes: ShipmentDecisionAttributes,
    criteria: Optional[DecisionCriteria] = None,
) -> List[Decision]:
    return DecisionEngine().evaluate(attributes, criteria)


def build_decision_attributes(
    shipment: ShipmentAggregate,
    totals: ShipmentTotals,
    context: Optional[ShipmentContext] = None,
) -> ShipmentDecisionAttributes:
    """Flatten a simulated shipment into the attributes the rules read.

    The licence check runs on the registration fee, the VOC check on FOB plus
    freight and the insurance sufficiency check on the landed value.
    """

    context = context or ShipmentContext()
    fob = shipment.fob_total
    fob_voc = fob + shipment.freight_total if shipment.freight_total else fob
    cost_coefficient = totals.total_cost / fob if fob > 0 else None
    return ShipmentDecisionAttributes(
        licence=shipment.registration_fee,
        fob=fob,
        fob_voc=fob_voc,
        insurance=shipment.insurance_total,
        caf=shipment.landed_value,
        cost_coefficient=cost_coefficient,
        rcp=totals.component(TaxComponent.PRICE_CONTROL_FEE),
        rrr=totals.component(TaxComponent.REGULARIZATION_FEE),
        payment_mode=context.payment_mode,
        incoterm=context.incoterm,
        route=context.route,
        supplier_country=context.supplier_country,
    )
