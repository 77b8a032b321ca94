"""Command-line interface for landedcost."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..caching.redis_client import RedisClient
from ..decisions.criteria import criteria_as_dict, default_criteria_chain
from ..errors import LandedCostError
from ..models import LineItem, ShipmentAggregate, ShipmentContext
from ..simulation import run_simulation
from ..tariff.fees import DEFAULT_EXCHANGE_RATE, FeeInputs, FeeSettings
from ..tariff.schedule import TariffRow, load_tariff_schedule

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


class LinePayload(BaseModel):
    classification_code: str
    designation: str = ""
    quantity: int
    unit_weight: float = 0.0
    unit_declared_value: float = 0.0

    model_config = ConfigDict(extra="forbid")

    def to_item(self) -> LineItem:
        return LineItem(**self.model_dump())


class FeeInputsPayload(BaseModel):
    invoice_amount: Optional[float] = Field(default=None, ge=0.0)
    exchange_rate: float = Field(default=DEFAULT_EXCHANGE_RATE, gt=0.0)
    transport_mode: Optional[str] = None
    insure: bool = False
    include_war_risk: bool = True
    ordinary_risk_rate: Optional[float] = Field(default=None, ge=0.0)
    container_type: Optional[str] = None
    container_count: int = Field(default=0, ge=0)
    voc_codes: Tuple[str, ...] = ()

    model_config = ConfigDict(extra="forbid")

    def to_inputs(self) -> FeeInputs:
        return FeeInputs(**self.model_dump())


class SimulationPayload(BaseModel):
    """Shipment JSON accepted by ``landedcost simulate``."""

    fob_total: float
    freight_total: float = 0.0
    insurance_total: float = 0.0
    registration_fee: float = 0.0
    financial_fees: float = 0.0
    forwarding_fee: float = 0.0
    security_fee: float = 0.0
    miscellaneous_fees: float = 0.0
    advance_of_funds: float = 0.0
    clearance_credit: float = 0.0
    conformity_fee: float = 0.0
    customs_stamp: float = 0.0

    items: List[LinePayload] = Field(default_factory=list)

    payment_mode: Optional[str] = None
    incoterm: Optional[str] = None
    route: Optional[str] = None
    supplier_country: Optional[str] = None

    desired_margin_pct: float = 30.0
    company_coefficient: float = 1.0
    vat_rate_pct: float = 18.0
    fee_settings: Optional[FeeSettings] = None
    fee_inputs: Optional[FeeInputsPayload] = None

    model_config = ConfigDict(extra="forbid")

    def to_shipment(self) -> ShipmentAggregate:
        return ShipmentAggregate(
            fob_total=self.fob_total,
            freight_total=self.freight_total,
            insurance_total=self.insurance_total,
            registration_fee=self.registration_fee,
            financial_fees=self.financial_fees,
            forwarding_fee=self.forwarding_fee,
            security_fee=self.security_fee,
            miscellaneous_fees=self.miscellaneous_fees,
            advance_of_funds=self.advance_of_funds,
            clearance_credit=self.clearance_credit,
            conformity_fee=self.conformity_fee,
            customs_stamp=self.customs_stamp,
        )

    def to_context(self) -> ShipmentContext:
        return ShipmentContext(
            payment_mode=self.payment_mode,
            incoterm=self.incoterm,
            route=self.route,
            supplier_country=self.supplier_country,
        )


def _row_payload(row: TariffRow) -> dict:
    return {
        "code": row.code,
        "short_code": row.short_code,
        "designation": row.designation,
        "duty_rate": row.duty_rate,
        "statistical_levy": row.statistical_levy,
        "community_solidarity_levy": row.community_solidarity_levy,
        "accompaniment_levy": row.accompaniment_levy,
        "competitiveness_levy": row.competitiveness_levy,
        "regularization_fee": row.regularization_fee,
        "price_control_fee": row.price_control_fee,
        "vat_rate": row.vat_rate,
        "special_beverage_tax": row.special_beverage_tax,
        "slaughter_tax": row.slaughter_tax,
        "cumulative_rate_with_vat": row.cumulative_rate_with_vat,
        "cumulative_rate_without_vat": row.cumulative_rate_without_vat,
    }


def _load_schedule(path: Optional[Path]):
    try:
        return load_tariff_schedule(path)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    except (json.JSONDecodeError, UnicodeDecodeError, csv.Error) as exc:
        raise click.ClickException(f"Cannot read tariff schedule {path}: {exc}") from exc
    except LandedCostError as exc:
        raise click.ClickException(f"Invalid tariff schedule: {exc}") from exc


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Landed-cost simulation command suite."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("simulate")
@click.argument("payload_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--tariffs",
    "tariffs_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Tariff schedule (JSON or CSV). Defaults to the bundled reference data.",
)
@click.option(
    "--criteria",
    "criteria_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Local JSON file with decision criteria.",
)
@click.option(
    "--redis-url",
    envvar="LANDEDCOST_REDIS_URL",
    default=None,
    help="Remote criteria store; skipped when unset.",
)
@click.option("--user-id", default=None, help="User whose stored criteria apply after the global ones.")
@click.option("--exclude-vat", is_flag=True, help="Resolve duty without VAT.")
def simulate(
    payload_path: Path,
    tariffs_path: Optional[Path],
    criteria_path: Optional[Path],
    redis_url: Optional[str],
    user_id: Optional[str],
    exclude_vat: bool,
) -> None:
    """Simulate the landed cost of the shipment described in PAYLOAD_PATH and emit JSON."""

    try:
        payload = SimulationPayload.model_validate(json.loads(payload_path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"{payload_path} is not valid JSON: {exc}") from exc
    except PydanticValidationError as exc:
        raise click.ClickException(f"Invalid shipment payload: {exc}") from exc

    schedule = _load_schedule(tariffs_path)
    redis_client = RedisClient(url=redis_url) if redis_url else None
    provider = default_criteria_chain(user_id=user_id, redis_client=redis_client, local_path=criteria_path)

    try:
        result = run_simulation(
            payload.to_shipment(),
            [line.to_item() for line in payload.items],
            schedule,
            provider.load(),
            context=payload.to_context(),
            desired_margin_pct=payload.desired_margin_pct,
            company_coefficient=payload.company_coefficient,
            vat_rate_pct=payload.vat_rate_pct,
            include_vat=not exclude_vat,
            fee_settings=payload.fee_settings,
            fee_inputs=payload.fee_inputs.to_inputs() if payload.fee_inputs else None,
        )
    except LandedCostError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(json.dumps(result.as_dict(), indent=2, ensure_ascii=False))


@cli.group()
def tariff() -> None:
    """Tariff schedule helpers."""


@tariff.command("lookup")
@click.argument("code")
@click.option("--tariffs", "tariffs_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
def tariff_lookup(code: str, tariffs_path: Optional[Path]) -> None:
    """Print the tariff row for CODE (10- or 6-digit SH code)."""

    row = _load_schedule(tariffs_path).lookup(code)
    if row is None:
        raise click.ClickException(f"No tariff row for {code}")
    click.echo(json.dumps(_row_payload(row), indent=2, ensure_ascii=False))


@tariff.command("search")
@click.argument("query")
@click.option("--tariffs", "tariffs_path", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@click.option("--limit", default=20, show_default=True, type=int)
def tariff_search(query: str, tariffs_path: Optional[Path], limit: int) -> None:
    """Search rows by partial code or designation."""

    schedule = _load_schedule(tariffs_path)
    rows = schedule.search_by_code(query) or schedule.search_by_designation(query)
    click.echo(json.dumps([_row_payload(row) for row in rows[:limit]], indent=2, ensure_ascii=False))


@cli.command("criteria")
@click.option("--criteria", "criteria_path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--redis-url", envvar="LANDEDCOST_REDIS_URL", default=None)
@click.option("--user-id", default=None)
def show_criteria(criteria_path: Optional[Path], redis_url: Optional[str], user_id: Optional[str]) -> None:
    """Print the decision criteria that would apply."""

    redis_client = RedisClient(url=redis_url) if redis_url else None
    provider = default_criteria_chain(user_id=user_id, redis_client=redis_client, local_path=criteria_path)
    click.echo(json.dumps(criteria_as_dict(provider.load()), indent=2))


if __name__ == "__main__":
    cli()
