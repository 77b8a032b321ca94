"""Tariff schedule, cost allocation, tax resolution and fee calculators."""

from .allocation import CostAllocator, allocate
from .fees import (
    FeeInputs,
    FeeSettings,
    InsurancePremium,
    RegistrationFee,
    advance_of_funds,
    clearance_credit,
    conformity_fee,
    contingency_provision,
    convert_fob,
    financial_fees,
    insurance_premium,
    registration_fee,
    security_fee,
)
from .resolver import TariffResolver, effective_duty_rate, summarize
from .schedule import TariffRow, TariffSchedule, get_tariff_schedule, load_tariff_schedule

__all__ = [
    "CostAllocator",
    "allocate",
    "FeeInputs",
    "FeeSettings",
    "InsurancePremium",
    "RegistrationFee",
    "registration_fee",
    "contingency_provision",
    "clearance_credit",
    "advance_of_funds",
    "convert_fob",
    "insurance_premium",
    "security_fee",
    "conformity_fee",
    "financial_fees",
    "TariffResolver",
    "effective_duty_rate",
    "summarize",
    "TariffRow",
    "TariffSchedule",
    "load_tariff_schedule",
    "get_tariff_schedule",
]
