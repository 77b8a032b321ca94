"""End-to-end import-cost simulation.

``run_simulation`` chains the pure components:

    [pre-tariff fees] -> allocation -> tariff resolution -> totals -> pricing advice
                                                                   -> decision rules

Schedule and criteria are resolved by the caller beforehand; nothing in here
does I/O apart from logging.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from landedcost.decisions.criteria import DecisionCriteria
from landedcost.decisions.engine import DecisionEngine, build_decision_attributes
from landedcost.models import (
    AllocationResult,
    Decision,
    LineItem,
    ShipmentAggregate,
    ShipmentContext,
    ShipmentTotals,
    TaxBreakdown,
)
from landedcost.observability import log_event, simulation_run
from landedcost.pricing import (
    DEFAULT_VAT_RATE_PCT,
    LineMargin,
    MarginSimulation,
    PricingAdvisor,
    PricingResult,
)
from landedcost.tariff.allocation import CostAllocator
from landedcost.tariff.fees import (
    FeeInputs,
    FeeSettings,
    advance_of_funds,
    clearance_credit,
    conformity_fee,
    contingency_provision,
    convert_fob,
    financial_fees,
    insurance_premium,
    registration_fee,
    security_fee,
    voc_declared_value,
)
from landedcost.tariff.resolver import ScheduleLookup, TariffResolver, summarize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationResult:
    run_id: str
    shipment: ShipmentAggregate
    allocations: List[AllocationResult]
    breakdowns: List[TaxBreakdown]
    totals: ShipmentTotals
    pricing: PricingResult
    line_margins: List[LineMargin]
    margin_grid: List[MarginSimulation]
    decisions: List[Decision]
    criteria: DecisionCriteria = field(default_factory=DecisionCriteria)

    def as_dict(self) -> Dict[str, Any]:
        """JSON-ready view of the result (enums flattened to their values)."""

        def _plain(obj: Any) -> Any:
            data = dataclasses.asdict(obj)
            return {key: getattr(value, "value", value) for key, value in data.items()}

        breakdowns = []
        for breakdown in self.breakdowns:
            row = _plain(breakdown)
            row["notes"] = list(breakdown.notes)
            row["unit_amounts"] = breakdown.unit_amounts()
            row["unit_cost_price"] = breakdown.unit_cost_price
            breakdowns.append(row)

        totals = _plain(self.totals)
        totals["unmapped_codes"] = list(self.totals.unmapped_codes)
        totals["customs_duty"] = self.totals.customs_duty
        totals["total_cost"] = self.totals.total_cost

        pricing = _plain(self.pricing)
        pricing["flags"] = [flag.value for flag in self.pricing.flags]

        return {
            "run_id": self.run_id,
            "shipment": _plain(self.shipment),
            "allocations": [_plain(allocation) for allocation in self.allocations],
            "breakdowns": breakdowns,
            "totals": totals,
            "pricing": pricing,
            "line_margins": [_plain(margin) for margin in self.line_margins],
            "margin_grid": [_plain(row) for row in self.margin_grid],
            "decisions": [decision.as_dict() for decision in self.decisions],
            "criteria": self.criteria.model_dump(by_alias=True),
        }


def apply_shipment_fees(
    shipment: ShipmentAggregate,
    items: Sequence[LineItem],
    settings: FeeSettings,
    inputs: FeeInputs,
    context: Optional[ShipmentContext] = None,
) -> ShipmentAggregate:
    """Return ``shipment`` with the fees that precede tariff resolution filled in.

    FOB comes first since the insurance premium is charged on FOB plus
    freight, and both feed the landed value the duty is computed on.
    """

    inputs.validate()
    context = context or ShipmentContext()
    updates: Dict[str, float] = {}

    fob = shipment.fob_total
    if inputs.invoice_amount is not None:
        fob = convert_fob(inputs.invoice_amount, inputs.exchange_rate, context.incoterm, settings)
        updates["fob_total"] = fob
        updates["financial_fees"] = financial_fees(
            inputs.invoice_amount,
            context.payment_mode,
            settings,
            exchange_rate=inputs.exchange_rate,
        )
    if inputs.insure:
        updates["insurance_total"] = insurance_premium(
            fob,
            shipment.freight_total,
            settings,
            transport_mode=inputs.transport_mode,
            include_war_risk=inputs.include_war_risk,
            ordinary_risk_rate=inputs.ordinary_risk_rate,
        ).amount
    if inputs.container_type:
        updates["security_fee"] = security_fee(inputs.container_type, inputs.container_count, settings)
    if inputs.voc_codes:
        updates["conformity_fee"] = conformity_fee(
            voc_declared_value(items, inputs.voc_codes), context.route, settings
        )

    if updates:
        logger.debug("Pre-tariff fees computed: %s", updates)
    return dataclasses.replace(shipment, **updates)


def apply_fee_settings(
    shipment: ShipmentAggregate,
    totals: ShipmentTotals,
    settings: FeeSettings,
) -> ShipmentAggregate:
    """Return ``shipment`` with the computed fees filled in.

    The registration fee follows FOB, the contingency provision follows CAF
    and the clearance credit and advance of funds follow the customs duty.
    """

    return dataclasses.replace(
        shipment,
        registration_fee=registration_fee(shipment.fob_total, settings).amount,
        miscellaneous_fees=contingency_provision(shipment.landed_value, settings),
        clearance_credit=clearance_credit(totals.customs_duty, settings),
        advance_of_funds=advance_of_funds(totals.customs_duty, settings),
    )


def run_simulation(
    shipment: ShipmentAggregate,
    items: Sequence[LineItem],
    schedule: ScheduleLookup,
    criteria: Optional[DecisionCriteria] = None,
    *,
    context: Optional[ShipmentContext] = None,
    desired_margin_pct: float = 30.0,
    company_coefficient: float = 1.0,
    vat_rate_pct: float = DEFAULT_VAT_RATE_PCT,
    include_vat: bool = True,
    fee_settings: Optional[FeeSettings] = None,
    fee_inputs: Optional[FeeInputs] = None,
    line_coefficients: Optional[Mapping[int, float]] = None,
    run_id: Optional[str] = None,
) -> SimulationResult:
    """Simulate the landed cost, pricing and customs guidance of one shipment.

    Input validation errors propagate as ``ValidationError`` before anything
    is computed. When ``fee_settings`` is given the fees on ``shipment`` are
    replaced by their computed values: those ``fee_inputs`` enables before
    allocation, then the registration fee, contingency provision, clearance
    credit and advance of funds once the duty is known.
    """

    criteria = criteria or DecisionCriteria()
    with simulation_run(run_id) as active_run_id:
        log_event("simulation started", target=logger, items=len(items), fob_total=shipment.fob_total)

        if fee_settings is not None:
            shipment = apply_shipment_fees(shipment, items, fee_settings, fee_inputs or FeeInputs(), context)

        allocations = CostAllocator().allocate(shipment, items)
        breakdowns = TariffResolver(include_vat=include_vat).resolve_all(items, allocations, schedule)
        totals = summarize(shipment, items, allocations, breakdowns)

        if fee_settings is not None:
            shipment = apply_fee_settings(shipment, totals, fee_settings)
            totals = summarize(shipment, items, allocations, breakdowns)

        advisor = PricingAdvisor()
        pricing = advisor.advise(
            shipment,
            totals,
            desired_margin_pct,
            company_coefficient=company_coefficient,
            vat_rate_pct=vat_rate_pct,
        )
        line_margins = advisor.line_margins(items, breakdowns, line_coefficients)
        grid = advisor.margin_grid(totals)

        attributes = build_decision_attributes(shipment, totals, context)
        decisions = DecisionEngine().evaluate(attributes, criteria)

        if totals.unmapped_codes:
            log_event(
                "simulation has unmapped classification codes",
                level=logging.WARNING,
                target=logger,
                codes=list(totals.unmapped_codes),
            )
        log_event(
            "simulation finished",
            target=logger,
            total_cost=totals.total_cost,
            duty_coefficient=pricing.duty_coefficient,
            decisions=len(decisions),
        )

    return SimulationResult(
        run_id=active_run_id,
        shipment=shipment,
        allocations=allocations,
        breakdowns=breakdowns,
        totals=totals,
        pricing=pricing,
        line_margins=line_margins,
        margin_grid=grid,
        decisions=decisions,
        criteria=criteria,
    )
