"""Decision criteria and the providers that resolve them.

The decision engine receives an already-resolved ``DecisionCriteria``. Where
that value comes from is the caller's choice, composed from one provider per
tier:

    CachedCriteriaProvider(
        FallbackCriteriaProvider([
            RedisCriteriaProvider(RedisClient(), user_id="u-1"),   # remote store
            FileCriteriaProvider(Path("criteria.json")),           # local copy
        ]),
        ttl_seconds=60,
    )

``FallbackCriteriaProvider`` always ends on the hard-coded defaults, so the
chain never comes back empty.
"""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence, runtime_checkable

import redis
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from landedcost.errors import CriteriaUnavailable

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 60.0


class DecisionCriteria(BaseModel):
    """Thresholds read by the decision rules.

    Field aliases match the keys used by the remote criteria store.
    """

    licence_control_arrival: float = Field(default=70000, alias="licenceControlArrival")
    licence_admission_fdi: float = Field(default=100000, alias="licenceAdmissionFDI")
    fob_rfcv_exemption: float = Field(default=1000000, alias="fobDispenseRFCV")
    fob_rfcv_subject: float = Field(default=1000000, alias="fobSoumisRFCV")
    fob_voc_not_admitted: float = Field(default=1000000, alias="fobVocNonAdmis")
    fob_voc_admitted: float = Field(default=1000000, alias="fobVocAdmis")
    insurance_not_receivable: float = Field(default=8025, alias="assuranceNonRecevable")
    insurance_receivable: float = Field(default=8025, alias="assuranceRecevable")
    coefficient_satisfactory: float = Field(default=1.40, alias="coefficientSatisfaisant")
    rcp_non_zero: bool = Field(default=True, alias="rcpDifferentZero")
    insurance_caf_ratio: float = Field(default=0.95, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


def merge_with_defaults(payload: Mapping[str, Any]) -> DecisionCriteria:
    """Overlay stored values on the defaults (stored keys win)."""

    try:
        return DecisionCriteria.model_validate(dict(payload))
    except PydanticValidationError as exc:
        raise CriteriaUnavailable(f"Stored decision criteria are invalid: {exc}") from exc


@runtime_checkable
class CriteriaProvider(Protocol):
    def load(self) -> Optional[DecisionCriteria]:
        """Return criteria, None when this tier holds nothing, or raise CriteriaUnavailable."""


class DefaultCriteriaProvider:
    def load(self) -> DecisionCriteria:
        return DecisionCriteria()


class StaticCriteriaProvider:
    """Criteria supplied in-process, e.g. from an already parsed settings payload."""

    def __init__(self, payload: Mapping[str, Any] | DecisionCriteria) -> None:
        self._payload = payload

    def load(self) -> DecisionCriteria:
        if isinstance(self._payload, DecisionCriteria):
            return self._payload
        return merge_with_defaults(self._payload)


class FileCriteriaProvider:
    """Criteria saved as a JSON object on local disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[DecisionCriteria]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CriteriaUnavailable(f"Cannot read criteria file {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise CriteriaUnavailable(f"Criteria file {self.path} does not hold a JSON object")
        return merge_with_defaults(payload)


class RedisCriteriaProvider:
    """Criteria from the remote store: global entry first, then the user's entry."""

    def __init__(self, client: Any, user_id: Optional[str] = None) -> None:
        self._client = client
        self.user_id = user_id

    def load(self) -> Optional[DecisionCriteria]:
        try:
            payload = self._client.get_criteria(self.user_id)
        except redis.exceptions.RedisError as exc:
            raise CriteriaUnavailable(f"Remote criteria store unavailable: {exc}") from exc
        if payload is None:
            return None
        return merge_with_defaults(payload)


class FallbackCriteriaProvider:
    """Tries each tier in order; the defaults are the last resort."""

    def __init__(self, providers: Sequence[CriteriaProvider]) -> None:
        self.providers = list(providers)

    def load(self) -> DecisionCriteria:
        for provider in self.providers:
            name = type(provider).__name__
            try:
                criteria = provider.load()
            except CriteriaUnavailable as exc:
                logger.warning("Criteria tier %s failed, trying next tier: %s", name, exc)
                continue
            if criteria is not None:
                logger.debug("Decision criteria resolved from %s", name)
                return criteria
        logger.info("No stored decision criteria found; using defaults")
        return DecisionCriteria()


class CachedCriteriaProvider:
    """Holds the inner provider's result for ``ttl_seconds``."""

    def __init__(
        self,
        inner: CriteriaProvider,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds is None:
            ttl_seconds = float(os.getenv("LANDEDCOST_CRITERIA_TTL", DEFAULT_CACHE_TTL_SECONDS))
        self.inner = inner
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cached: Optional[DecisionCriteria] = None
        self._loaded_at = 0.0

    def load(self) -> Optional[DecisionCriteria]:
        now = self._clock()
        if self._cached is not None and now - self._loaded_at < self.ttl_seconds:
            return self._cached
        criteria = self.inner.load()
        if criteria is not None:
            self._cached = criteria
            self._loaded_at = now
        return criteria

    def invalidate(self) -> None:
        self._cached = None


def default_criteria_chain(
    *,
    user_id: Optional[str] = None,
    redis_client: Any = None,
    local_path: str | Path | None = None,
) -> CachedCriteriaProvider:
    """Remote store -> local file -> defaults, cached."""

    tiers: list[CriteriaProvider] = []
    if redis_client is not None:
        tiers.append(RedisCriteriaProvider(redis_client, user_id=user_id))
    if local_path is not None:
        tiers.append(FileCriteriaProvider(local_path))
    return CachedCriteriaProvider(FallbackCriteriaProvider(tiers))


def criteria_as_dict(criteria: DecisionCriteria) -> Dict[str, Any]:
    return criteria.model_dump(by_alias=True)
