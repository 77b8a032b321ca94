"""Customs and regulatory decision rules.

Each rule is an independent function of the shipment attributes and the
criteria, returning the decisions it emits (usually zero or one). ``RULES``
fixes the evaluation order, which only matters for presentation grouping.

Thresholds keep the operator they were authored with: the licence arrival
control fires on equality only, admissions use ``>=``, exemptions use ``<``.
A boundary value is its own regulatory trigger and must not be folded into a
range.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from landedcost.decisions.criteria import DecisionCriteria
from landedcost.models import Decision, Severity, ShipmentDecisionAttributes

RuleFn = Callable[[ShipmentDecisionAttributes, DecisionCriteria], List[Decision]]

UEMOA_COUNTRIES = frozenset({"BF", "CI", "ML", "NE", "SN", "TG", "BJ", "GW"})


@dataclass(frozen=True)
class Rule:
    name: str
    evaluate: RuleFn


def _decision(rule: str, category: str, title: str, description: str, severity: Severity) -> Decision:
    return Decision(category=category, title=title, description=description, severity=severity, rule=rule)


def _format_amount(value: float) -> str:
    # French grouping ("1 234 567,5") as shown on customs notices
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return text.replace(",", " ").replace(".", ",")


def _plain_amount(value: float) -> str:
    # ungrouped, as the floor is quoted in the customs notice
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def is_uemoa_country(country_code: str) -> bool:
    return country_code.strip().upper() in UEMOA_COUNTRIES


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def licence_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if attrs.licence is None:
        return []
    if attrs.licence == criteria.licence_control_arrival:
        return [
            _decision(
                "licence",
                "Licence",
                "Contrôle d'arrivée",
                "CONTROLE D'ARRIVEE",
                Severity.WARNING,
            )
        ]
    if attrs.licence >= criteria.licence_admission_fdi:
        return [
            _decision(
                "licence",
                "Licence",
                "Admission FDI",
                "ADMIS A LA LEVEE DE LA FDI PAR CONNECTION GUCE",
                Severity.SUCCESS,
            )
        ]
    return []


def fob_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if attrs.fob is None:
        return []
    if attrs.fob < criteria.fob_rfcv_exemption:
        return [_decision("fob", "FOB", "Dispense RFCV", "DISPENSE RFCV", Severity.INFO)]
    if attrs.fob >= criteria.fob_rfcv_subject:
        return [
            _decision(
                "fob",
                "FOB",
                "Soumis au RFCV",
                "SOUMIS AU RFCV ET CONTROLE STRUCTURE EN CHARGE DE LA QUALITE PAR CONNECTION GUCE",
                Severity.WARNING,
            )
        ]
    return []


def _voc_admitted(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> bool:
    if attrs.fob_voc is None or attrs.fob_voc < criteria.fob_voc_not_admitted:
        return False
    return attrs.fob_voc >= criteria.fob_voc_admitted


def fob_voc_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if attrs.fob_voc is None:
        return []
    if attrs.fob_voc < criteria.fob_voc_not_admitted:
        return [
            _decision(
                "fob_voc",
                "FOB_VOC",
                "Non admis VOC",
                "NON ADMIS A LA LEVEE DU VOC PAR CONNECTION GUCE",
                Severity.ERROR,
            )
        ]
    if _voc_admitted(attrs, criteria):
        return [
            _decision(
                "fob_voc",
                "FOB_VOC",
                "Admis VOC",
                "ADMIS A LA LEVEE DU VOC CONTROLE OBLIGATOIRE AVANT EXPEDITION SELON LA ROUTE A-B-C CHOISIE",
                Severity.SUCCESS,
            )
        ]
    return []


_ROUTES: Dict[str, Tuple[str, Severity]] = {
    "A": (
        "ROUTE A : CONTROLE PHYSIQUE OBLIGATOIRE - IMPORTATION IRREGULIERE OU PRODUITS SENSIBLES",
        Severity.WARNING,
    ),
    "B": (
        "ROUTE B : IMPORTATIONS REGULIERES DE PRODUITS HOMOGENES NON SENSIBLES PREALABLEMENT ENREGISTRES",
        Severity.INFO,
    ),
    "C": (
        "ROUTE C : MARCHANDISES SOUS CERTIFICATION - CONTROLE DOCUMENTAIRE",
        Severity.INFO,
    ),
}


def route_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    """Inspection route; only meaningful once the VOC is admitted."""

    if not attrs.route or not _voc_admitted(attrs, criteria):
        return []
    route = attrs.route.strip().upper()
    if route not in _ROUTES:
        return []
    description, severity = _ROUTES[route]
    return [_decision("route", "Route", f"Route {route}", description, severity)]


def insurance_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if attrs.insurance is None:
        return []
    if attrs.insurance < criteria.insurance_not_receivable:
        floor = _plain_amount(criteria.insurance_not_receivable)
        return [
            _decision(
                "insurance",
                "Assurance",
                "Prime non recevable",
                f"PRIME NON RECEVABLE PAR LA DOUANE, NE PEUT ETRE INFERIEUR A {floor} F.CFA"
                " - REDRESSEMENT DOUANE F.CFA HORS FRAIS ASACI",
                Severity.ERROR,
            )
        ]
    if attrs.insurance >= criteria.insurance_receivable:
        return [
            _decision(
                "insurance",
                "Assurance",
                "Prime recevable",
                "ASSURANCE TRANSPORT FACULTE GUCE, PRIME POTENTIELLEMENT RECEVABLE PAR LA DOUANE",
                Severity.SUCCESS,
            )
        ]
    return [
        _decision(
            "insurance",
            "Assurance",
            "Certificat d'assurance",
            "LEVER UN CERTIFICAT D'ASSURANCE VIA LE GUCE",
            Severity.INFO,
        )
    ]


def insurance_value_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    """Insured value must cover the configured share of the landed value."""

    if attrs.insurance is None or attrs.caf is None:
        return []
    required = criteria.insurance_caf_ratio * attrs.caf
    if attrs.insurance >= required:
        return []
    share = _format_amount(criteria.insurance_caf_ratio * 100)
    return [
        _decision(
            "insurance_value",
            "Assurance",
            "Valeur assurance insuffisante",
            f"LA VALEUR DE L'ASSURANCE DOIT ETRE SUPERIEURE A {share}% de la valeur CAF"
            f" soit {_format_amount(required)} F.CFA",
            Severity.WARNING,
        )
    ]


def uemoa_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if not attrs.supplier_country or not is_uemoa_country(attrs.supplier_country):
        return []
    return [
        _decision(
            "uemoa",
            "UEMOA",
            "Autorisation de change",
            "ADMIS A LA LEVEE DE L'AUTORISATION DE CHANGE",
            Severity.SUCCESS,
        )
    ]


_PAYMENT_MODES: Dict[str, Tuple[str, str, Severity]] = {
    "crédit documentaire": (
        "Crédit documentaire",
        "CREDIT DOCUMENTAIRE FORTE SECURITE NB: FRAIS BANCAIRES ET FINANCIERS PLUS ELEVES"
        " SI IRREVOCABLE ET CONFIRMES",
        Severity.SUCCESS,
    ),
    "remise documentaire": (
        "Remise documentaire",
        "REMISE DOCUMENTAIRE CONTRE PAIEMENT - BONNE SECURITE SI DOCUMENTS CONFORMES",
        Severity.INFO,
    ),
    "virement bancaire": (
        "Virement bancaire",
        "VIREMENT- TRES FAIBLE SECURITE DE PAIEMENT",
        Severity.WARNING,
    ),
}
_PAYMENT_ALIASES = {
    "credit documentaire": "crédit documentaire",
    "virement": "virement bancaire",
}


def payment_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if not attrs.payment_mode:
        return []
    mode = attrs.payment_mode.strip().lower()
    mode = _PAYMENT_ALIASES.get(mode, mode)
    if mode not in _PAYMENT_MODES:
        return []
    title, description, severity = _PAYMENT_MODES[mode]
    return [_decision("payment", "Paiement", title, description, severity)]


_INCOTERMS: Dict[str, str] = {
    "EXW": "EXW- PRISE EN CHARGE DES RISQUES ET DES DEPENSES DEPUIS L'USINE DU FOURNISSEUR",
    "FCA": "FCA- PRISE EN CHARGE DES RISQUES ET DES DEPENSES JUSQU'AU LIEU CONVENU",
    "FOB": "FOB- PRISE EN CHARGE DES RISQUES ET DES FRAIS DEPUIS BORD NAVIRE EXPORT",
    "CFR": "CFR- PRISE EN CHARGE DES RISQUES ET DES DEPENSES JUSQU'AU PORT DE DESTINATION",
    "CIF": "CIF- PRISE EN CHARGE DES RISQUES ET DES DEPENSES ET ASSURANCE JUSQU'AU PORT DE DESTINATION",
    "DDP": "DDP- PRISE EN CHARGE DES RISQUES ET DES DEPENSES JUSQU'A L'ENTREPOT DU CLIENT - DROIT DE DOUANE PAYE",
    "DPU": "DPU- PRISE EN CHARGE DES RISQUES ET DES DEPENSES JUSQU'A L'ENTREPOT DU CLIENT - DROIT DE DOUANE NON PAYE",
}


def incoterm_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if not attrs.incoterm:
        return []
    code = attrs.incoterm.strip().upper()
    description = _INCOTERMS.get(code)
    if description is None:
        return []
    return [_decision("incoterm", "Incoterm", code, description, Severity.INFO)]


def coefficient_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if attrs.cost_coefficient is None:
        return []
    if attrs.cost_coefficient <= criteria.coefficient_satisfactory:
        return [
            _decision(
                "coefficient",
                "Coefficient",
                "Coefficient satisfaisant",
                "COEFFICIENT MULTIPLICATEUR SATISFAISANT POUR LE MODE MARITIME",
                Severity.SUCCESS,
            )
        ]
    return [
        _decision(
            "coefficient",
            "Coefficient",
            "Coefficient non satisfaisant",
            "COEFFICIENT MULTIPLICATEUR NON SATISFAISANT POUR LE MODE MARITIME"
            " - POIDS ET VALEUR FAIBLE POUR CE MODE DE TRANSPORT",
            Severity.WARNING,
        )
    ]


def security_fee_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    """The cargo tracking note (BSC) applies to every shipment."""

    return [_decision("security_fee", "BSC", "BSC", "ADMIS A LA LEVEE DU BSC", Severity.SUCCESS)]


def price_control_rule(attrs: ShipmentDecisionAttributes, criteria: DecisionCriteria) -> List[Decision]:
    if not criteria.rcp_non_zero or attrs.rcp is None or attrs.rcp == 0:
        return []
    return [
        _decision(
            "price_control",
            "RCP/RRR",
            "Redevance RCP/RRR",
            "SOUMIS A LA REDEVANCE RCP / RRR",
            Severity.INFO,
        )
    ]


RULES: Tuple[Rule, ...] = (
    Rule("licence", licence_rule),
    Rule("fob", fob_rule),
    Rule("fob_voc", fob_voc_rule),
    Rule("route", route_rule),
    Rule("insurance", insurance_rule),
    Rule("insurance_value", insurance_value_rule),
    Rule("uemoa", uemoa_rule),
    Rule("payment", payment_rule),
    Rule("incoterm", incoterm_rule),
    Rule("coefficient", coefficient_rule),
    Rule("security_fee", security_fee_rule),
    Rule("price_control", price_control_rule),
)
