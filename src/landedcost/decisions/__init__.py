"""Customs decision rules and the criteria they read."""

from .criteria import (
    CachedCriteriaProvider,
    CriteriaProvider,
    DecisionCriteria,
    DefaultCriteriaProvider,
    FallbackCriteriaProvider,
    FileCriteriaProvider,
    RedisCriteriaProvider,
    StaticCriteriaProvider,
    default_criteria_chain,
)
from .engine import DecisionEngine, build_decision_attributes, evaluate
from .rules import RULES, Rule

__all__ = [
    "CachedCriteriaProvider",
    "CriteriaProvider",
    "DecisionCriteria",
    "DefaultCriteriaProvider",
    "FallbackCriteriaProvider",
    "FileCriteriaProvider",
    "RedisCriteriaProvider",
    "StaticCriteriaProvider",
    "default_criteria_chain",
    "DecisionEngine",
    "build_decision_attributes",
    "evaluate",
    "RULES",
    "Rule",
]
