"""Domain records exchanged between the allocation, tariff, pricing and decision layers.

Inputs (``ShipmentAggregate``, ``LineItem``) are immutable; a new simulation
builds new instances rather than editing old ones. Every monetary amount is a
plain float in a single implied currency unit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Dict, List, Optional

from landedcost.errors import ValidationError


def require_non_negative(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(name, value, "expected a number")
    if not math.isfinite(value):
        raise ValidationError(name, value, "expected a finite number")
    if value < 0:
        raise ValidationError(name, value, "must be >= 0")


# ---------------------------------------------------------------------------
# Shipment inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ShipmentAggregate:
    """Shipment-level totals entered once per simulation."""

    fob_total: float
    freight_total: float = 0.0
    insurance_total: float = 0.0

    # Flat fees
    registration_fee: float = 0.0      # RPI
    financial_fees: float = 0.0
    forwarding_fee: float = 0.0        # forwarding agent services
    security_fee: float = 0.0          # BSC
    miscellaneous_fees: float = 0.0    # contingency provision on CAF
    advance_of_funds: float = 0.0
    clearance_credit: float = 0.0
    conformity_fee: float = 0.0        # COC
    customs_stamp: float = 0.0         # TS douane

    FLAT_FEES = (
        "registration_fee",
        "financial_fees",
        "forwarding_fee",
        "security_fee",
        "miscellaneous_fees",
        "advance_of_funds",
        "clearance_credit",
        "conformity_fee",
        "customs_stamp",
    )

    def validate(self) -> None:
        for item in fields(self):
            require_non_negative(item.name, getattr(self, item.name))

    @property
    def flat_fees_total(self) -> float:
        return sum(getattr(self, name) for name in self.FLAT_FEES)

    @property
    def landed_value(self) -> float:
        """Shipment CAF: FOB plus freight plus insurance."""
        return self.fob_total + self.freight_total + self.insurance_total


@dataclass(frozen=True)
class LineItem:
    """One declared good on the commercial invoice."""

    classification_code: str
    designation: str
    quantity: int
    unit_weight: float = 0.0
    unit_declared_value: float = 0.0

    def validate(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError("quantity", self.quantity, "expected an integer")
        if self.quantity <= 0:
            raise ValidationError("quantity", self.quantity, "must be > 0")
        require_non_negative("unit_weight", self.unit_weight)
        require_non_negative("unit_declared_value", self.unit_declared_value)

    @property
    def extended_declared_value(self) -> float:
        return self.unit_declared_value * self.quantity

    @property
    def extended_weight(self) -> float:
        return self.unit_weight * self.quantity


@dataclass(frozen=True)
class ShipmentContext:
    """Raw shipment fields consumed only by the decision rules."""

    payment_mode: Optional[str] = None
    incoterm: Optional[str] = None
    route: Optional[str] = None
    supplier_country: Optional[str] = None


# ---------------------------------------------------------------------------
# Allocation and tax results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AllocationResult:
    """Freight and insurance share of one line, extended over its quantity."""

    quantity: int
    extended_declared_value: float
    prorated_freight: float
    prorated_insurance: float
    landed_value: float

    @property
    def unit_declared_value(self) -> float:
        return self.extended_declared_value / self.quantity

    @property
    def unit_freight(self) -> float:
        return self.prorated_freight / self.quantity

    @property
    def unit_insurance(self) -> float:
        return self.prorated_insurance / self.quantity

    @property
    def unit_landed_value(self) -> float:
        return self.landed_value / self.quantity


class TaxComponent(str, Enum):
    """Tariff components, valued as the matching ``TaxBreakdown`` field name."""

    DUTY = "duty"
    STATISTICAL_LEVY = "statistical_levy"                    # RSTA
    COMMUNITY_SOLIDARITY_LEVY = "community_solidarity_levy"  # PCS
    ACCOMPANIMENT_LEVY = "accompaniment_levy"                # PUA
    COMPETITIVENESS_LEVY = "competitiveness_levy"            # PCC
    REGULARIZATION_FEE = "regularization_fee"                # RRR
    PRICE_CONTROL_FEE = "price_control_fee"                  # RCP
    VAT = "vat"                                              # TVA
    SPECIAL_BEVERAGE_TAX = "special_beverage_tax"            # TSB
    SLAUGHTER_TAX = "slaughter_tax"                          # TAB


UNMAPPED_CLASSIFICATION = "unmapped-classification"

# Components a cumulative duty rate already covers. On lines charged at the
# plain duty rate they are paid on top of the duty.
STANDALONE_COMPONENTS: tuple[TaxComponent, ...] = (
    TaxComponent.STATISTICAL_LEVY,
    TaxComponent.COMMUNITY_SOLIDARITY_LEVY,
    TaxComponent.ACCOMPANIMENT_LEVY,
    TaxComponent.COMPETITIVENESS_LEVY,
    TaxComponent.VAT,
    TaxComponent.SPECIAL_BEVERAGE_TAX,
    TaxComponent.SLAUGHTER_TAX,
)


@dataclass(frozen=True)
class TaxBreakdown:
    """Extended tax amounts for one line; unit amounts are derived."""

    classification_code: str
    quantity: int
    applied_duty_rate: float
    duty: float = 0.0
    statistical_levy: float = 0.0
    community_solidarity_levy: float = 0.0
    accompaniment_levy: float = 0.0
    competitiveness_levy: float = 0.0
    regularization_fee: float = 0.0
    price_control_fee: float = 0.0
    vat: float = 0.0
    special_beverage_tax: float = 0.0
    slaughter_tax: float = 0.0
    unit_base_cost: float = 0.0  # unit declared value + unit freight + unit insurance
    cumulative_rate: bool = False  # duty charged at a cumulative rate
    notes: tuple[str, ...] = ()

    def amount(self, component: TaxComponent) -> float:
        return getattr(self, component.value)

    def unit_amount(self, component: TaxComponent) -> float:
        return self.amount(component) / self.quantity

    def unit_amounts(self) -> Dict[str, float]:
        return {component.value: self.unit_amount(component) for component in TaxComponent}

    @property
    def total(self) -> float:
        return sum(self.amount(component) for component in TaxComponent)

    @property
    def unit_total(self) -> float:
        return self.total / self.quantity

    @property
    def unit_cost_price(self) -> float:
        """Projected unit cost price (PRU) before margin."""
        return self.unit_base_cost + self.unit_total

    @property
    def is_unmapped(self) -> bool:
        return UNMAPPED_CLASSIFICATION in self.notes

    @property
    def standalone_total(self) -> float:
        """Taxes not already included in the duty amount."""
        if self.cumulative_rate:
            return 0.0
        return sum(self.amount(component) for component in STANDALONE_COMPONENTS)


@dataclass(frozen=True)
class ShipmentTotals:
    """Aggregates over every line of a simulation."""

    fob_total: float
    freight_total: float
    insurance_total: float
    flat_fees_total: float
    item_count: int
    total_units: int
    total_weight: float
    total_declared_value: float
    total_landed_value: float
    component_totals: Dict[str, float] = field(default_factory=dict)
    standalone_taxes: float = 0.0  # see TaxBreakdown.standalone_total
    unmapped_codes: tuple[str, ...] = ()

    def component(self, component: TaxComponent) -> float:
        return self.component_totals.get(component.value, 0.0)

    @property
    def customs_duty(self) -> float:
        return self.component(TaxComponent.DUTY)

    @property
    def total_cost(self) -> float:
        """Projected landed cost ("coût de revient") of the whole shipment."""
        return (
            self.fob_total
            + self.freight_total
            + self.insurance_total
            + self.customs_duty
            + self.component(TaxComponent.REGULARIZATION_FEE)
            + self.component(TaxComponent.PRICE_CONTROL_FEE)
            + self.standalone_taxes
            + self.flat_fees_total
        )


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Decision:
    """Regulatory guidance emitted by one decision rule."""

    category: str
    title: str
    description: str
    severity: Severity
    rule: str = ""

    def as_dict(self) -> Dict[str, str]:
        return {
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "rule": self.rule,
        }


@dataclass(frozen=True)
class ShipmentDecisionAttributes:
    """Flattened shipment attributes read by the decision rules.

    Any attribute left as ``None`` makes the rules that depend on it inapplicable.
    """

    licence: Optional[float] = None
    fob: Optional[float] = None
    fob_voc: Optional[float] = None
    insurance: Optional[float] = None
    caf: Optional[float] = None
    cost_coefficient: Optional[float] = None
    rcp: Optional[float] = None
    rrr: Optional[float] = None
    payment_mode: Optional[str] = None
    incoterm: Optional[str] = None
    route: Optional[str] = None
    supplier_country: Optional[str] = None


def decisions_as_dicts(decisions: List[Decision]) -> List[Dict[str, str]]:
    return [decision.as_dict() for decision in decisions]
