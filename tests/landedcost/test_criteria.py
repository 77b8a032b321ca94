"""Tests for decision criteria and the provider chain."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import redis
from pydantic import ValidationError as PydanticValidationError

from landedcost.decisions.criteria import (
    CachedCriteriaProvider,
    CriteriaProvider,
    DecisionCriteria,
    DefaultCriteriaProvider,
    FallbackCriteriaProvider,
    FileCriteriaProvider,
    RedisCriteriaProvider,
    StaticCriteriaProvider,
    criteria_as_dict,
    default_criteria_chain,
    merge_with_defaults,
)
from landedcost.errors import CriteriaUnavailable


class TestDecisionCriteria:
    def test_defaults(self):
        criteria = DecisionCriteria()
        assert criteria.licence_control_arrival == 70_000
        assert criteria.licence_admission_fdi == 100_000
        assert criteria.fob_voc_admitted == 1_000_000
        assert criteria.insurance_receivable == 8_025
        assert criteria.coefficient_satisfactory == 1.40
        assert criteria.rcp_non_zero is True
        assert criteria.insurance_caf_ratio == 0.95

    def test_stored_keys_override_defaults(self):
        criteria = merge_with_defaults({"licenceControlArrival": 50_000, "unknownKey": 1})
        assert criteria.licence_control_arrival == 50_000
        assert criteria.licence_admission_fdi == 100_000

    def test_invalid_stored_value(self):
        with pytest.raises(CriteriaUnavailable):
            merge_with_defaults({"fobSoumisRFCV": "beaucoup"})

    def test_criteria_are_frozen(self):
        criteria = DecisionCriteria()
        with pytest.raises(PydanticValidationError):
            criteria.licence_control_arrival = 1

    def test_dump_uses_store_keys(self):
        assert criteria_as_dict(DecisionCriteria())["coefficientSatisfaisant"] == 1.40


class TestFileProvider:
    def test_missing_file_is_empty_tier(self, tmp_path: Path):
        assert FileCriteriaProvider(tmp_path / "criteria.json").load() is None

    def test_reads_json_object(self, tmp_path: Path):
        path = tmp_path / "criteria.json"
        path.write_text(json.dumps({"fobDispenseRFCV": 500_000}), encoding="utf-8")
        assert FileCriteriaProvider(path).load().fob_rfcv_exemption == 500_000

    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_unreadable_file(self, tmp_path: Path, content: str):
        path = tmp_path / "criteria.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(CriteriaUnavailable):
            FileCriteriaProvider(path).load()


class TestRedisProvider:
    def test_loads_user_criteria(self):
        client = MagicMock()
        client.get_criteria.return_value = {"coefficientSatisfaisant": 1.6}
        criteria = RedisCriteriaProvider(client, user_id="u-1").load()
        client.get_criteria.assert_called_once_with("u-1")
        assert criteria.coefficient_satisfactory == 1.6

    def test_miss_is_empty_tier(self):
        client = MagicMock()
        client.get_criteria.return_value = None
        assert RedisCriteriaProvider(client).load() is None

    def test_connection_failure(self):
        client = MagicMock()
        client.get_criteria.side_effect = redis.exceptions.ConnectionError("down")
        with pytest.raises(CriteriaUnavailable):
            RedisCriteriaProvider(client).load()


class TestFallbackProvider:
    def test_failed_tier_is_logged_and_skipped(self, caplog):
        failing = MagicMock()
        failing.load.side_effect = CriteriaUnavailable("store down")
        local = StaticCriteriaProvider({"licenceAdmissionFDI": 120_000})

        with caplog.at_level(logging.WARNING):
            criteria = FallbackCriteriaProvider([failing, local]).load()

        assert criteria.licence_admission_fdi == 120_000
        assert "store down" in caplog.text

    def test_first_non_empty_tier_wins(self):
        empty = MagicMock()
        empty.load.return_value = None
        first = StaticCriteriaProvider({"assuranceRecevable": 9_000})
        second = StaticCriteriaProvider({"assuranceRecevable": 1})
        assert FallbackCriteriaProvider([empty, first, second]).load().insurance_receivable == 9_000

    def test_defaults_are_last_resort(self):
        assert FallbackCriteriaProvider([]).load() == DecisionCriteria()

    def test_providers_satisfy_protocol(self):
        assert isinstance(DefaultCriteriaProvider(), CriteriaProvider)
        assert isinstance(FileCriteriaProvider("x.json"), CriteriaProvider)


class TestCachedProvider:
    def test_reuses_value_within_ttl(self):
        now = [0.0]
        inner = MagicMock()
        inner.load.return_value = DecisionCriteria()
        cached = CachedCriteriaProvider(inner, ttl_seconds=60, clock=lambda: now[0])

        cached.load()
        now[0] = 59.0
        cached.load()
        assert inner.load.call_count == 1

        now[0] = 61.0
        cached.load()
        assert inner.load.call_count == 2

    def test_invalidate_forces_reload(self):
        inner = MagicMock()
        inner.load.return_value = DecisionCriteria()
        cached = CachedCriteriaProvider(inner, ttl_seconds=60, clock=lambda: 0.0)
        cached.load()
        cached.invalidate()
        cached.load()
        assert inner.load.call_count == 2

    def test_empty_result_is_not_cached(self):
        inner = MagicMock()
        inner.load.return_value = None
        cached = CachedCriteriaProvider(inner, ttl_seconds=60, clock=lambda: 0.0)
        assert cached.load() is None
        cached.load()
        assert inner.load.call_count == 2

    def test_ttl_from_environment(self, monkeypatch):
        monkeypatch.setenv("LANDEDCOST_CRITERIA_TTL", "5")
        assert CachedCriteriaProvider(DefaultCriteriaProvider()).ttl_seconds == 5.0


def test_default_chain_prefers_remote_then_file(tmp_path: Path):
    path = tmp_path / "criteria.json"
    path.write_text(json.dumps({"licenceControlArrival": 1}), encoding="utf-8")
    client = MagicMock()
    client.get_criteria.side_effect = redis.exceptions.TimeoutError("slow")

    criteria = default_criteria_chain(user_id="u-1", redis_client=client, local_path=path).load()

    assert criteria.licence_control_arrival == 1
