"""landedcost - import landed-cost simulation, tariff resolution and customs guidance."""

from .decisions import DecisionCriteria, DecisionEngine, build_decision_attributes
from .errors import CriteriaUnavailable, LandedCostError, ValidationError
from .models import (
    AllocationResult,
    Decision,
    LineItem,
    Severity,
    ShipmentAggregate,
    ShipmentContext,
    ShipmentDecisionAttributes,
    ShipmentTotals,
    TaxBreakdown,
    TaxComponent,
)
from .pricing import PricingAdvisor, PricingResult
from .simulation import SimulationResult, run_simulation
from .tariff import CostAllocator, TariffResolver, TariffRow, TariffSchedule, load_tariff_schedule
from .version import __version__

__all__ = [
    "AllocationResult",
    "CostAllocator",
    "CriteriaUnavailable",
    "Decision",
    "DecisionCriteria",
    "DecisionEngine",
    "LandedCostError",
    "LineItem",
    "PricingAdvisor",
    "PricingResult",
    "Severity",
    "ShipmentAggregate",
    "ShipmentContext",
    "ShipmentDecisionAttributes",
    "ShipmentTotals",
    "SimulationResult",
    "TariffResolver",
    "TariffRow",
    "TariffSchedule",
    "TaxBreakdown",
    "TaxComponent",
    "ValidationError",
    "build_decision_attributes",
    "load_tariff_schedule",
    "run_simulation",
    "__version__",
]
