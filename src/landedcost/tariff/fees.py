"""Fee calculators driven by ``FeeSettings``.

The registration fee (RPI, "redevance pour prestations informatiques") is
tiered on FOB:

  fob <  threshold_min                 -> 0
  threshold_min <= fob < threshold_mid -> flat amount
  fob >= threshold_mid                 -> max(round(fob * licence_rate), licence_min)

Contingency provisions follow CAF; clearance credit and advance of funds
follow the customs duty total. Those four need the tariff result. The other
calculators (FOB conversion, insurance premium, BSC, COC and financial fees)
only need the invoice and shipment facts, so they run before allocation.

Every amount is rounded to the currency unit as it is computed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from landedcost.errors import ValidationError
from landedcost.models import LineItem, require_non_negative
from landedcost.tariff.schedule import normalize_code

DEFAULT_EXCHANGE_RATE = 655.957  # EUR -> XOF parity

AIR_TRANSPORT_MODES = frozenset({"aerien", "aérien", "air"})


class FeeSettings(BaseModel):
    """Rates and thresholds for the automatically computed fees."""

    # Registration fee (RPI)
    rpi_threshold_min: float = Field(default=0.0, ge=0.0, alias="rpiThresholdMin")
    rpi_threshold_mid: float = Field(default=0.0, ge=0.0, alias="rpiThresholdMid")
    rpi_flat_mid: float = Field(default=0.0, ge=0.0, alias="rpiFlatMid")
    rpi_licence_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="rpiLicenceRate")
    rpi_licence_min: float = Field(default=0.0, ge=0.0, alias="rpiLicenceMin")
    contingency_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="cafFraisImprevusRate")
    clearance_credit_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="creditEnlevementRate")
    advance_of_funds_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="avanceFondsRate")

    # FOB conversion
    fob_multiplier_exw: float = Field(default=1.0, ge=0.0, alias="fobMultiplierEXW")
    fob_multiplier_fca: float = Field(default=1.0, ge=0.0, alias="fobMultiplierFCA")

    # Insurance premium
    insured_value_multiplier: float = Field(default=1.0, ge=0.0, alias="assuranceValueMultiplier")
    ordinary_risk_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="ordinaryRiskRate")
    ordinary_risk_minimum: float = Field(default=0.0, ge=0.0, alias="ordinaryRiskMinimum")
    accessories_flat: float = Field(default=0.0, ge=0.0, alias="accessoriesFlat")
    air_tax_multiplier: float = Field(default=0.0, ge=0.0, alias="airTaxMultiplier")
    war_risk_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="warRiskRate")

    # Security fee (BSC), per container
    bsc_rate_tc20: float = Field(default=0.0, ge=0.0, alias="bscRateTC20")
    bsc_rate_tc40: float = Field(default=0.0, ge=0.0, alias="bscRateTC40")
    bsc_rate_tc40hq: float = Field(default=0.0, ge=0.0, alias="bscRateTC40HQ")
    bsc_rate_break_bulk: float = Field(default=0.0, ge=0.0, alias="bscRateConventionnel")
    bsc_rate_groupage: float = Field(default=0.0, ge=0.0, alias="bscRateGroupage")

    # Certificate of conformity (COC)
    coc_threshold: float = Field(default=0.0, ge=0.0, alias="cocThreshold")
    coc_rate_route_a: float = Field(default=0.0, ge=0.0, le=1.0, alias="cocRateRouteA")
    coc_min_route_a: float = Field(default=0.0, ge=0.0, alias="cocMinRouteA")
    coc_max_route_a: float = Field(default=0.0, ge=0.0, alias="cocMaxRouteA")
    coc_rate_route_b: float = Field(default=0.0, ge=0.0, le=1.0, alias="cocRateRouteB")
    coc_min_route_b: float = Field(default=0.0, ge=0.0, alias="cocMinRouteB")
    coc_max_route_b: float = Field(default=0.0, ge=0.0, alias="cocMaxRouteB")
    coc_rate_route_c: float = Field(default=0.0, ge=0.0, le=1.0, alias="cocRateRouteC")
    coc_min_route_c: float = Field(default=0.0, ge=0.0, alias="cocMinRouteC")
    coc_max_route_c: float = Field(default=0.0, ge=0.0, alias="cocMaxRouteC")

    # Financial fees, bank transfer
    transfer_opening_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersVirementOuvertureDossier")
    transfer_file_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersVirementDossier")
    transfer_swift_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersVirementSwift")
    transfer_copy_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersVirementPhotocopie")

    # Financial fees, documentary collection
    collection_opening_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersRemiseOuvertureDossier")
    collection_file_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersRemiseDossier")
    collection_swift_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersRemiseSwift")
    collection_copy_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersRemisePhotocopie")
    collection_unpaid_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersRemiseImpaye")
    collection_courier_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersRemiseCourrierExpress")
    collection_extension_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersRemiseCommissionProrogatoire")
    collection_exchange_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersRemiseCommissionChange")
    collection_commission_floor: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersRemiseCommissionSeuil")
    collection_commission_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersRemiseCommissionTaux")

    # Financial fees, documentary credit
    credit_opening_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditOuvertureDossier")
    credit_confirmation_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditConfirmation")
    credit_file_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditDossier")
    credit_swift_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditSwift")
    credit_settlement_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditRealisation")
    credit_copy_fee: float = Field(default=0.0, ge=0.0, alias="fraisFinanciersCreditPhotocopie")
    credit_acceptance_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditAcceptance")
    credit_negotiation_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditNegociation")
    credit_payment_commission_rate: float = Field(
        default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditCommissionPaiement"
    )
    credit_commission_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditCommission")
    credit_bceao_tax_rate: float = Field(default=0.0, ge=0.0, le=1.0, alias="fraisFinanciersCreditTaxeBceao")

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


@dataclass(frozen=True)
class FeeInputs:
    """Invoice and transport facts the pre-tariff fees are computed from.

    Each calculator runs only when its inputs are present: FOB conversion and
    financial fees need ``invoice_amount``, the premium needs ``insure``, the
    security fee needs ``container_type`` and the COC needs ``voc_codes``.
    """

    invoice_amount: Optional[float] = None  # invoice currency
    exchange_rate: float = DEFAULT_EXCHANGE_RATE
    transport_mode: Optional[str] = None
    insure: bool = False
    include_war_risk: bool = True
    ordinary_risk_rate: Optional[float] = None  # overrides FeeSettings.ordinary_risk_rate
    container_type: Optional[str] = None
    container_count: int = 0
    voc_codes: tuple[str, ...] = ()

    def validate(self) -> None:
        if self.invoice_amount is not None:
            require_non_negative("invoice_amount", self.invoice_amount)
        require_non_negative("exchange_rate", self.exchange_rate)
        if self.exchange_rate == 0:
            raise ValidationError("exchange_rate", self.exchange_rate, "must be > 0")
        if self.ordinary_risk_rate is not None:
            require_non_negative("ordinary_risk_rate", self.ordinary_risk_rate)
        require_non_negative("container_count", self.container_count)


# ---------------------------------------------------------------------------
# Registration fee and duty-based fees
# ---------------------------------------------------------------------------

class RegistrationTranche(str, Enum):
    ZERO = "zero"
    FLAT = "flat"
    LICENCE = "licence"


@dataclass(frozen=True)
class RegistrationFee:
    tranche: RegistrationTranche
    amount: float
    licence_amount: float = 0.0


def registration_fee(fob: float, settings: FeeSettings) -> RegistrationFee:
    require_non_negative("fob", fob)
    if settings.rpi_threshold_mid < settings.rpi_threshold_min:
        raise ValidationError(
            "rpi_threshold_mid",
            settings.rpi_threshold_mid,
            f"must be >= rpi_threshold_min ({settings.rpi_threshold_min})",
        )
    fob = round(fob)
    if fob < settings.rpi_threshold_min:
        return RegistrationFee(tranche=RegistrationTranche.ZERO, amount=0.0)
    if fob < settings.rpi_threshold_mid:
        return RegistrationFee(tranche=RegistrationTranche.FLAT, amount=float(round(settings.rpi_flat_mid)))
    licence = float(round(fob * settings.rpi_licence_rate))
    return RegistrationFee(
        tranche=RegistrationTranche.LICENCE,
        amount=float(round(max(licence, settings.rpi_licence_min))),
        licence_amount=licence,
    )


def contingency_provision(caf: float, settings: FeeSettings) -> float:
    require_non_negative("caf", caf)
    return float(round(caf * settings.contingency_rate))


def clearance_credit(customs_duty: float, settings: FeeSettings) -> float:
    require_non_negative("customs_duty", customs_duty)
    return float(round(customs_duty * settings.clearance_credit_rate))


def advance_of_funds(customs_duty: float, settings: FeeSettings) -> float:
    require_non_negative("customs_duty", customs_duty)
    return float(round(customs_duty * settings.advance_of_funds_rate))


# ---------------------------------------------------------------------------
# FOB conversion and insurance
# ---------------------------------------------------------------------------

def convert_fob(
    invoice_amount: float,
    exchange_rate: float,
    incoterm: Optional[str],
    settings: FeeSettings,
) -> float:
    """Convert the invoice total to FOB in local currency.

    EXW and FCA invoices are uplifted by their multiplier to cover the
    pre-carriage; any other Incoterm converts at par.
    """

    require_non_negative("invoice_amount", invoice_amount)
    require_non_negative("exchange_rate", exchange_rate)
    code = (incoterm or "").strip().upper()
    multiplier = 1.0
    if code == "EXW":
        multiplier = settings.fob_multiplier_exw
    elif code == "FCA":
        multiplier = settings.fob_multiplier_fca
    return float(round(invoice_amount * multiplier * exchange_rate))


@dataclass(frozen=True)
class InsurancePremium:
    insured_value: float
    ordinary_risk: float
    accessories: float
    air_tax: float
    war_risk: float

    @property
    def amount(self) -> float:
        return float(round(self.ordinary_risk + self.accessories + self.air_tax + self.war_risk))


def insurance_premium(
    fob: float,
    freight: float,
    settings: FeeSettings,
    *,
    transport_mode: Optional[str] = None,
    include_war_risk: bool = True,
    ordinary_risk_rate: Optional[float] = None,
) -> InsurancePremium:
    """Cargo insurance premium on the insured value (FOB + freight, uplifted).

    The ordinary risk never drops below ``ordinary_risk_minimum``. Air
    shipments add a tax proportional to the ordinary risk.
    """

    require_non_negative("fob", fob)
    require_non_negative("freight", freight)
    insured_value = float(round((round(fob) + round(freight)) * settings.insured_value_multiplier))
    rate = ordinary_risk_rate if ordinary_risk_rate else settings.ordinary_risk_rate

    ordinary = float(round(insured_value * rate))
    if ordinary < settings.ordinary_risk_minimum:
        ordinary = settings.ordinary_risk_minimum
    air_tax = 0.0
    if (transport_mode or "").strip().lower() in AIR_TRANSPORT_MODES:
        air_tax = float(round(ordinary * settings.air_tax_multiplier))
    war_risk = float(round(insured_value * settings.war_risk_rate)) if include_war_risk else 0.0

    return InsurancePremium(
        insured_value=insured_value,
        ordinary_risk=ordinary,
        accessories=float(round(settings.accessories_flat)),
        air_tax=air_tax,
        war_risk=war_risk,
    )


# ---------------------------------------------------------------------------
# Security fee (BSC) and certificate of conformity (COC)
# ---------------------------------------------------------------------------

_CONTAINER_RATES = {
    "20_pieds": "bsc_rate_tc20",
    "tc20": "bsc_rate_tc20",
    "40_pieds": "bsc_rate_tc40",
    "tc40": "bsc_rate_tc40",
    "40_pieds_hc": "bsc_rate_tc40hq",
    "tc40hq": "bsc_rate_tc40hq",
    "conventionnel": "bsc_rate_break_bulk",
    "groupage": "bsc_rate_groupage",
}


def security_fee(container_type: Optional[str], container_count: float, settings: FeeSettings) -> float:
    """BSC: a per-unit rate for the container type times the container count.

    Unknown container types carry no fee.
    """

    require_non_negative("container_count", container_count)
    rate_field = _CONTAINER_RATES.get((container_type or "").strip().lower())
    if rate_field is None:
        return 0.0
    return float(round(getattr(settings, rate_field) * round(container_count)))


def voc_declared_value(items: Sequence[LineItem], voc_codes: Iterable[str]) -> Optional[float]:
    """Declared value of the lines whose code is on the VOC list, or None if none is."""

    listed = {normalize_code(code) for code in voc_codes}
    matching = [item for item in items if normalize_code(item.classification_code) in listed]
    if not matching:
        return None
    return sum(item.extended_declared_value for item in matching)


def conformity_fee(voc_value: Optional[float], route: Optional[str], settings: FeeSettings) -> float:
    """COC on the VOC goods, clamped to the route's min and max.

    Nothing is due without VOC goods, below ``coc_threshold`` or on a route
    other than A, B or C.
    """

    if voc_value is None:
        return 0.0
    require_non_negative("voc_value", voc_value)
    if voc_value < settings.coc_threshold:
        return 0.0
    suffix = (route or "").strip().lower()
    if suffix not in ("a", "b", "c"):
        return 0.0
    minimum = getattr(settings, f"coc_min_route_{suffix}")
    maximum = getattr(settings, f"coc_max_route_{suffix}")
    value = float(round(voc_value * getattr(settings, f"coc_rate_route_{suffix}")))
    if value <= minimum:
        return float(minimum)
    if value >= maximum:
        return float(maximum)
    return value


# ---------------------------------------------------------------------------
# Financial fees
# ---------------------------------------------------------------------------

class PaymentInstrument(str, Enum):
    TRANSFER = "virement"
    COLLECTION = "remise_documentaire"
    CREDIT = "credit_documentaire"


_PAYMENT_INSTRUMENTS = {
    "virement": PaymentInstrument.TRANSFER,
    "virement bancaire": PaymentInstrument.TRANSFER,
    "remise documentaire": PaymentInstrument.COLLECTION,
    "credit documentaire": PaymentInstrument.CREDIT,
    "crédit documentaire": PaymentInstrument.CREDIT,
}


def payment_instrument(payment_mode: Optional[str]) -> Optional[PaymentInstrument]:
    if not payment_mode:
        return None
    return _PAYMENT_INSTRUMENTS.get(payment_mode.strip().lower().replace("_", " "))


def financial_fees(
    invoice_amount: float,
    payment_mode: Optional[str],
    settings: FeeSettings,
    *,
    exchange_rate: float = DEFAULT_EXCHANGE_RATE,
) -> float:
    """Bank charges for settling the supplier invoice.

    Proportional charges apply to the invoice converted at ``exchange_rate``.
    Payment modes other than transfer, documentary collection and
    documentary credit carry no charge.
    """

    require_non_negative("invoice_amount", invoice_amount)
    require_non_negative("exchange_rate", exchange_rate)
    instrument = payment_instrument(payment_mode)
    base = invoice_amount * exchange_rate

    def share(rate: float) -> float:
        return float(round(base * rate))

    if instrument is PaymentInstrument.TRANSFER:
        return (
            share(settings.transfer_opening_rate)
            + settings.transfer_file_fee
            + settings.transfer_swift_fee
            + settings.transfer_copy_fee
        )
    if instrument is PaymentInstrument.COLLECTION:
        commission = max(base * settings.collection_commission_rate, settings.collection_commission_floor)
        return float(
            round(
                share(settings.collection_opening_rate)
                + share(settings.collection_file_rate)
                + share(settings.collection_swift_rate)
                + settings.collection_copy_fee
                + settings.collection_unpaid_fee
                + share(settings.collection_courier_rate)
                + settings.collection_extension_fee
                + share(settings.collection_exchange_rate)
                + commission
            )
        )
    if instrument is PaymentInstrument.CREDIT:
        rates = (
            settings.credit_opening_rate,
            settings.credit_confirmation_rate,
            settings.credit_file_rate,
            settings.credit_swift_rate,
            settings.credit_settlement_rate,
            settings.credit_acceptance_rate,
            settings.credit_negotiation_rate,
            settings.credit_payment_commission_rate,
            settings.credit_commission_rate,
            settings.credit_bceao_tax_rate,
        )
        return float(round(sum(share(rate) for rate in rates) + settings.credit_copy_fee))
    return 0.0
