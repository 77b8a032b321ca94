"""Tests for the individual customs decision rules."""

from __future__ import annotations

import pytest

from landedcost.decisions.criteria import DecisionCriteria
from landedcost.decisions.engine import DecisionEngine
from landedcost.models import Severity, ShipmentDecisionAttributes


def _titles(**attributes) -> list[str]:
    decisions = DecisionEngine().evaluate(ShipmentDecisionAttributes(**attributes), DecisionCriteria())
    return [decision.title for decision in decisions if decision.category != "BSC"]


def _only(category: str, criteria: DecisionCriteria | None = None, **attributes):
    decisions = DecisionEngine().evaluate(ShipmentDecisionAttributes(**attributes), criteria)
    matching = [decision for decision in decisions if decision.category == category]
    assert len(matching) <= 1
    return matching[0] if matching else None


class TestLicence:
    def test_arrival_control_on_exact_floor(self):
        decision = _only("Licence", licence=70_000)
        assert decision.title == "Contrôle d'arrivée"
        assert decision.description == "CONTROLE D'ARRIVEE"
        assert decision.severity is Severity.WARNING

    def test_just_above_floor_emits_nothing(self):
        assert _only("Licence", licence=70_001) is None
        assert _only("Licence", licence=99_999) is None

    def test_admission_from_threshold(self):
        decision = _only("Licence", licence=100_000)
        assert decision.title == "Admission FDI"
        assert decision.severity is Severity.SUCCESS


class TestFob:
    def test_below_threshold_is_exempt(self):
        decision = _only("FOB", fob=999_999)
        assert decision.title == "Dispense RFCV"
        assert decision.severity is Severity.INFO

    def test_threshold_is_subject(self):
        decision = _only("FOB", fob=1_000_000)
        assert decision.title == "Soumis au RFCV"
        assert decision.severity is Severity.WARNING


class TestVocAndRoute:
    def test_not_admitted_suppresses_route(self):
        assert _titles(fob_voc=999_999, route="A") == ["Non admis VOC"]
        assert _only("FOB_VOC", fob_voc=999_999).severity is Severity.ERROR

    def test_admitted_then_route(self):
        assert _titles(fob_voc=1_000_000, route="a") == ["Admis VOC", "Route A"]
        assert _only("Route", fob_voc=1_000_000, route="A").severity is Severity.WARNING

    @pytest.mark.parametrize("route", ["B", "c"])
    def test_routes_b_and_c_are_informational(self, route):
        decision = _only("Route", fob_voc=2_000_000, route=route)
        assert decision.title == f"Route {route.upper()}"
        assert decision.severity is Severity.INFO

    def test_unknown_route_is_ignored(self):
        assert _only("Route", fob_voc=2_000_000, route="Z") is None


class TestInsurance:
    def test_premium_below_floor(self):
        decision = _only("Assurance", insurance=8_024)
        assert decision.title == "Prime non recevable"
        assert "NE PEUT ETRE INFERIEUR A 8025 F.CFA" in decision.description
        assert decision.severity is Severity.ERROR

    def test_fractional_floor_is_quoted_as_is(self):
        criteria = DecisionCriteria(assuranceNonRecevable=12_500.5)
        decision = _only("Assurance", criteria, insurance=100)
        assert "INFERIEUR A 12500.5 F.CFA" in decision.description

    def test_premium_at_floor_is_receivable(self):
        assert _only("Assurance", insurance=8_025).title == "Prime recevable"

    def test_gap_between_thresholds_asks_for_certificate(self):
        criteria = DecisionCriteria(assuranceNonRecevable=5_000, assuranceRecevable=10_000)
        decision = _only("Assurance", criteria, insurance=7_000)
        assert decision.title == "Certificat d'assurance"
        assert decision.severity is Severity.INFO

    def test_insured_value_below_share_of_caf(self):
        decisions = DecisionEngine().evaluate(ShipmentDecisionAttributes(insurance=10_000, caf=1_160_000))
        titles = [decision.title for decision in decisions if decision.category == "Assurance"]
        assert titles == ["Prime recevable", "Valeur assurance insuffisante"]
        warning = decisions[1]
        assert warning.severity is Severity.WARNING
        assert "95%" in warning.description
        assert "1 102 000 F.CFA" in warning.description

    def test_insured_value_covering_caf(self):
        assert _titles(insurance=1_102_000, caf=1_160_000) == ["Prime recevable"]


class TestOriginPaymentIncoterm:
    @pytest.mark.parametrize("country", ["SN", "ci", " bf "])
    def test_uemoa_supplier(self, country):
        assert _only("UEMOA", supplier_country=country).title == "Autorisation de change"

    def test_non_uemoa_supplier(self):
        assert _only("UEMOA", supplier_country="FR") is None

    @pytest.mark.parametrize(
        "mode, title, severity",
        [
            ("Crédit Documentaire", "Crédit documentaire", Severity.SUCCESS),
            ("credit documentaire", "Crédit documentaire", Severity.SUCCESS),
            ("Remise documentaire", "Remise documentaire", Severity.INFO),
            ("VIREMENT", "Virement bancaire", Severity.WARNING),
            ("virement bancaire", "Virement bancaire", Severity.WARNING),
        ],
    )
    def test_payment_modes(self, mode, title, severity):
        decision = _only("Paiement", payment_mode=mode)
        assert decision.title == title
        assert decision.severity is severity

    def test_unknown_payment_mode(self):
        assert _only("Paiement", payment_mode="espèces") is None

    def test_incoterm(self):
        decision = _only("Incoterm", incoterm="cif")
        assert decision.title == "CIF"
        assert decision.description.startswith("CIF- ")
        assert decision.severity is Severity.INFO
        assert _only("Incoterm", incoterm="XYZ") is None


class TestCoefficientAndFees:
    def test_coefficient_at_threshold_is_satisfactory(self):
        assert _only("Coefficient", cost_coefficient=1.40).severity is Severity.SUCCESS

    def test_coefficient_above_threshold(self):
        decision = _only("Coefficient", cost_coefficient=1.41)
        assert decision.title == "Coefficient non satisfaisant"
        assert decision.severity is Severity.WARNING

    def test_price_control_fee(self):
        assert _only("RCP/RRR", rcp=500).title == "Redevance RCP/RRR"
        assert _only("RCP/RRR", rcp=0) is None
        assert _only("RCP/RRR", DecisionCriteria(rcpDifferentZero=False), rcp=500) is None
