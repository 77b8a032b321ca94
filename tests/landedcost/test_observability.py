from __future__ import annotations

import logging

from landedcost.observability import current_run_id, log_event, simulation_run


def test_run_id_is_bound_and_restored():
    assert current_run_id() is None
    with simulation_run("outer") as outer:
        assert outer == "outer"
        with simulation_run() as inner:
            assert inner != "outer"
            assert current_run_id() == inner
        assert current_run_id() == "outer"
    assert current_run_id() is None


def test_log_event_attaches_payload(caplog):
    with caplog.at_level(logging.INFO, logger="landedcost"):
        with simulation_run("run-7"):
            log_event("priced", items=3)
    record = caplog.records[-1]
    assert record.getMessage() == "priced"
    assert record.payload == {"run_id": "run-7", "items": 3}
