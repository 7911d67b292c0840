"""Synthetic outcome sampling and payload generation."""

from .outcomes import (
    Branch,
    CategoryKind,
    FailurePronePolicy,
    FastReadPolicy,
    OutcomePolicy,
    OutcomeSample,
    OutcomeSampler,
    RandomScenarioPolicy,
    SlowAnalysisPolicy,
    build_policies,
    default_policies,
    draw_outcome,
)

__all__ = [
    "Branch",
    "CategoryKind",
    "OutcomePolicy",
    "FastReadPolicy",
    "SlowAnalysisPolicy",
    "FailurePronePolicy",
    "RandomScenarioPolicy",
    "OutcomeSample",
    "OutcomeSampler",
    "build_policies",
    "default_policies",
    "draw_outcome",
]
