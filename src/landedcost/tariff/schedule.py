"""Tariff schedule: commodity classification code -> tax-rate row.

Rows are loaded once from static reference data (JSON or CSV) and are
read-only afterwards. Lookups accept SH codes with or without dots and
spaces and match either the 10-digit code or the 6-digit short code.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from landedcost.errors import ValidationError

logger = logging.getLogger(__name__)

_RATE_FIELDS = (
    "duty_rate",
    "statistical_levy",
    "community_solidarity_levy",
    "accompaniment_levy",
    "competitiveness_levy",
    "regularization_fee",
    "price_control_fee",
    "vat_rate",
    "special_beverage_tax",
    "slaughter_tax",
)

# Column names used by the customs reference export (TEC).
_SOURCE_ALIASES: Dict[str, str] = {
    "sh10Code": "code",
    "sh10_code": "code",
    "sh6Code": "short_code",
    "sh6_code": "short_code",
    "dd": "duty_rate",
    "rsta": "statistical_levy",
    "pcs": "community_solidarity_levy",
    "pua": "accompaniment_levy",
    "pcc": "competitiveness_levy",
    "rrr": "regularization_fee",
    "rcp": "price_control_fee",
    "tva": "vat_rate",
    "tsb": "special_beverage_tax",
    "tab": "slaughter_tax",
    "cumulAvecTVA": "cumulative_rate_with_vat",
    "cumul_avec_tva": "cumulative_rate_with_vat",
    "cumulSansTVA": "cumulative_rate_without_vat",
    "cumul_sans_tva": "cumulative_rate_without_vat",
}


def normalize_code(code: str) -> str:
    """Strip dots and whitespace from a classification code."""
    return "".join(ch for ch in str(code) if ch not in ". \t")


def _check_rate(name: str, value: Optional[float]) -> None:
    if value is None:
        return
    if not math.isfinite(value):
        raise ValidationError(name, value, "rate must be a finite number")
    if value < 0 or value > 100:
        raise ValidationError(name, value, "rate must be within [0, 100]")


@dataclass(frozen=True)
class TariffRow:
    """Applicable rates (percentages) for one classification code."""

    code: str
    duty_rate: float = 0.0
    statistical_levy: float = 0.0
    community_solidarity_levy: float = 0.0
    accompaniment_levy: float = 0.0
    competitiveness_levy: float = 0.0
    regularization_fee: float = 0.0
    price_control_fee: float = 0.0
    vat_rate: float = 0.0
    special_beverage_tax: float = 0.0
    slaughter_tax: float = 0.0
    cumulative_rate_with_vat: Optional[float] = None
    cumulative_rate_without_vat: Optional[float] = None
    short_code: Optional[str] = None
    designation: str = ""

    def validate(self) -> None:
        if not normalize_code(self.code):
            raise ValidationError("code", self.code, "classification code is empty")
        for name in _RATE_FIELDS:
            _check_rate(name, getattr(self, name))
        _check_rate("cumulative_rate_with_vat", self.cumulative_rate_with_vat)
        _check_rate("cumulative_rate_without_vat", self.cumulative_rate_without_vat)
        with_vat = self.cumulative_rate_with_vat
        without_vat = self.cumulative_rate_without_vat
        # a zero cumulative rate means "not set", as in duty resolution
        if with_vat and without_vat and with_vat < without_vat:
            raise ValidationError(
                "cumulative_rate_with_vat",
                with_vat,
                f"must be >= cumulative_rate_without_vat ({without_vat})",
            )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "TariffRow":
        """Build a row from a reference-data record, accepting source column names."""

        known = {item.name for item in fields(cls)}
        values: Dict[str, Any] = {}
        for key, raw in payload.items():
            name = _SOURCE_ALIASES.get(key, key)
            if name not in known:
                continue
            values[name] = raw

        if "code" not in values:
            raise ValidationError("code", None, "classification code is missing")
        values["code"] = str(values["code"]).strip()
        if values.get("short_code") in ("", None):
            values.pop("short_code", None)
        else:
            values["short_code"] = str(values["short_code"]).strip()
        values["designation"] = str(values.get("designation") or "").strip()

        for name in _RATE_FIELDS:
            values[name] = _coerce_rate(name, values.get(name), default=0.0)
        for name in ("cumulative_rate_with_vat", "cumulative_rate_without_vat"):
            values[name] = _coerce_rate(name, values.get(name), default=None)

        row = cls(**values)
        row.validate()
        return row


def _coerce_rate(name: str, raw: Any, *, default: Optional[float]) -> Optional[float]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        return float(str(raw).replace(",", ".").replace("%", "").strip())
    except ValueError as exc:
        raise ValidationError(name, raw, "rate is not numeric") from exc


class TariffSchedule:
    """Read-only lookup table of tariff rows."""

    def __init__(self, rows: Iterable[TariffRow]) -> None:
        self._rows: List[TariffRow] = []
        self._by_code: Dict[str, TariffRow] = {}
        self._by_short_code: Dict[str, TariffRow] = {}
        for row in rows:
            row.validate()
            key = normalize_code(row.code)
            if key in self._by_code:
                logger.warning("Duplicate tariff row for %s; keeping the first entry", row.code)
                continue
            self._rows.append(row)
            self._by_code[key] = row
            if row.short_code:
                self._by_short_code.setdefault(normalize_code(row.short_code), row)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.lookup(code) is not None

    def lookup(self, code: str) -> Optional[TariffRow]:
        """Return the row for ``code`` (10-digit first, then 6-digit), or None."""

        key = normalize_code(code)
        if not key:
            return None
        return self._by_code.get(key) or self._by_short_code.get(key)

    def search_by_designation(self, query: str) -> List[TariffRow]:
        needle = query.strip().lower()
        if not needle:
            return []
        return [row for row in self._rows if needle in row.designation.lower()]

    def search_by_code(self, query: str) -> List[TariffRow]:
        """Partial match on either code, ignoring dots and spaces."""

        needle = normalize_code(query)
        if not needle:
            return []
        return [
            row
            for row in self._rows
            if needle in normalize_code(row.code) or needle in normalize_code(row.short_code or "")
        ]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def default_schedule_path() -> Path:
    base = os.getenv("LANDEDCOST_DATA_ROOT")
    if base:
        return Path(base) / "tariffs" / "tec_sample.json"
    return Path(__file__).resolve().parents[3] / "data" / "tariffs" / "tec_sample.json"


def _read_records(path: Path) -> List[Dict[str, Any]]:
    if path.suffix.lower() == ".csv":
        with path.open(newline="", encoding="utf-8") as handle:
            return [dict(record) for record in csv.DictReader(handle)]

    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("articles") or payload.get("rows") or []
    if not isinstance(payload, list):
        return []
    return [entry for entry in payload if isinstance(entry, dict)]


def load_tariff_schedule(path: str | Path | None = None) -> TariffSchedule:
    """Load a schedule from a JSON (list or ``{"articles": [...]}``) or CSV file."""

    schedule_path = Path(path) if path is not None else default_schedule_path()
    if not schedule_path.exists():
        raise FileNotFoundError(f"Tariff schedule not found: {schedule_path}")
    records = _read_records(schedule_path)
    rows = [TariffRow.from_mapping(record) for record in records]
    schedule = TariffSchedule(rows)
    logger.info("Loaded %d tariff rows from %s", len(schedule), schedule_path)
    return schedule


@lru_cache(maxsize=None)
def get_tariff_schedule(path: str | None = None) -> TariffSchedule:
    """Return a cached schedule for ``path`` (default reference data when None)."""
    return load_tariff_schedule(path)
