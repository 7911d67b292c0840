"""
Outcome sampling for simulated endpoints.

Each sensor category owns a policy that turns uniform random draws into an
OutcomeSample (latency, branch, variant). Four policy shapes exist:

  fast-read      latency from a narrow window, branch always normal
  slow-analysis  latency from a moderate window; with slow_probability the
                 latency comes from a much larger window and branch is slow
  failure-prone  latency from a fixed window; with error_probability branch
                 is error (variant = cause), otherwise variant is an
                 informational sub-type
  random-scenario  one draw picks high_latency (fixed latency, slow branch),
                 error (no latency) or success (no latency); variant is the
                 scenario name

Windows are half-open [low, high) in milliseconds. Policies never keep state
between draws; the only state is the random.Random handed to them.
"""

import random
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..config import ConfigError
from ..statistics import BernoulliDistribution, CategoricalDistribution, UniformIntDistribution


class Branch(str, Enum):
    """Simulated outcome branch."""

    NORMAL = "normal"
    SLOW = "slow"
    ERROR = "error"


class CategoryKind(str, Enum):
    """Shape of the sampling policy behind a category."""

    FAST_READ = "fast_read"
    SLOW_ANALYSIS = "slow_analysis"
    FAILURE_PRONE = "failure_prone"
    RANDOM_SCENARIO = "random_scenario"


@dataclass(frozen=True)
class OutcomeSample:
    """One drawn outcome; immutable once drawn."""

    latency_ms: int
    branch: Branch
    variant: Any = None

    @property
    def complex_analysis(self) -> bool:
        """True when latency came from the high-latency (slow) window."""
        return self.branch is Branch.SLOW

    @property
    def is_error(self) -> bool:
        return self.branch is Branch.ERROR


class OutcomePolicy(ABC):
    """Maps random draws to an OutcomeSample for one category."""

    kind: CategoryKind

    @abstractmethod
    def draw(self, rng: random.Random) -> OutcomeSample:
        pass

    @abstractmethod
    def latency_bounds(self) -> tuple[int, int]:
        """Overall [low, high) of any latency this policy can produce."""


@dataclass
class FastReadPolicy(OutcomePolicy):
    window: UniformIntDistribution

    kind = CategoryKind.FAST_READ

    def draw(self, rng: random.Random) -> OutcomeSample:
        return OutcomeSample(latency_ms=self.window.sample(rng), branch=Branch.NORMAL)

    def latency_bounds(self) -> tuple[int, int]:
        return self.window.low, self.window.high


@dataclass
class SlowAnalysisPolicy(OutcomePolicy):
    window: UniformIntDistribution
    slow_window: UniformIntDistribution
    slow_probability: float = 0.15
    _slow: BernoulliDistribution = field(init=False, repr=False)

    kind = CategoryKind.SLOW_ANALYSIS

    def __post_init__(self):
        self._slow = BernoulliDistribution(p=self.slow_probability)

    def draw(self, rng: random.Random) -> OutcomeSample:
        if self._slow.sample_bool(rng):
            return OutcomeSample(latency_ms=self.slow_window.sample(rng), branch=Branch.SLOW)
        return OutcomeSample(latency_ms=self.window.sample(rng), branch=Branch.NORMAL)

    def latency_bounds(self) -> tuple[int, int]:
        return (
            min(self.window.low, self.slow_window.low),
            max(self.window.high, self.slow_window.high),
        )


DEFAULT_ALERT_TYPES = ("info", "warning", "normal")
DEFAULT_FAILURE_CAUSE = "sensor communication failure"


@dataclass
class FailurePronePolicy(OutcomePolicy):
    window: UniformIntDistribution
    error_probability: float = 0.20
    variants: tuple[str, ...] = DEFAULT_ALERT_TYPES
    error_cause: str = DEFAULT_FAILURE_CAUSE
    _error: BernoulliDistribution = field(init=False, repr=False)
    _variant: CategoricalDistribution = field(init=False, repr=False)

    kind = CategoryKind.FAILURE_PRONE

    def __post_init__(self):
        self._error = BernoulliDistribution(p=self.error_probability)
        self._variant = CategoricalDistribution(categories=list(self.variants))

    def draw(self, rng: random.Random) -> OutcomeSample:
        latency = self.window.sample(rng)
        if self._error.sample_bool(rng):
            return OutcomeSample(latency_ms=latency, branch=Branch.ERROR, variant=self.error_cause)
        return OutcomeSample(
            latency_ms=latency, branch=Branch.NORMAL, variant=self._variant.sample(rng)
        )

    def latency_bounds(self) -> tuple[int, int]:
        return self.window.low, self.window.high


SCENARIO_HIGH_LATENCY = "high_latency"
SCENARIO_ERROR = "error"
SCENARIO_SUCCESS = "success"


@dataclass
class RandomScenarioPolicy(OutcomePolicy):
    high_latency_probability: float = 0.10
    error_probability: float = 0.10
    high_latency_ms: int = 1200
    _scenario: CategoricalDistribution = field(init=False, repr=False)

    kind = CategoryKind.RANDOM_SCENARIO

    def __post_init__(self):
        total = self.high_latency_probability + self.error_probability
        if min(self.high_latency_probability, self.error_probability) < 0 or total > 1 + 1e-9:
            raise ValueError("scenario probabilities must be non-negative and sum to at most 1")
        success = max(0.0, 1.0 - total)
        if self.high_latency_ms < 0:
            raise ValueError("high_latency_ms must not be negative")
        self._scenario = CategoricalDistribution(
            categories=[SCENARIO_HIGH_LATENCY, SCENARIO_ERROR, SCENARIO_SUCCESS],
            weights=[self.high_latency_probability, self.error_probability, success],
        )

    def draw(self, rng: random.Random) -> OutcomeSample:
        scenario = self._scenario.sample(rng)
        if scenario == SCENARIO_HIGH_LATENCY:
            return OutcomeSample(self.high_latency_ms, Branch.SLOW, scenario)
        if scenario == SCENARIO_ERROR:
            return OutcomeSample(0, Branch.ERROR, scenario)
        return OutcomeSample(0, Branch.NORMAL, scenario)

    def latency_bounds(self) -> tuple[int, int]:
        return 0, self.high_latency_ms + 1


def draw_outcome(policy: OutcomePolicy, rng: random.Random) -> OutcomeSample:
    """Pure mapping from a policy and a random source to one outcome."""
    return policy.draw(rng)


def default_policies() -> dict[str, OutcomePolicy]:
    """Policies per sensor category, matching the production vessel monitor."""
    return {
        "engine": FastReadPolicy(window=UniformIntDistribution(50, 80)),
        "navigation": FastReadPolicy(window=UniformIntDistribution(40, 60)),
        "diagnostics": SlowAnalysisPolicy(
            window=UniformIntDistribution(300, 600),
            slow_window=UniformIntDistribution(1000, 1500),
            slow_probability=0.15,
        ),
        "alerts": FailurePronePolicy(
            window=UniformIntDistribution(80, 160),
            error_probability=0.20,
        ),
        "noise": RandomScenarioPolicy(),
    }


def _window(value: Any, key: str) -> UniformIntDistribution:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ConfigError(f"{key} must be a [low, high] pair of milliseconds")
    return UniformIntDistribution(int(value[0]), int(value[1]))


_ALLOWED_KEYS = {
    CategoryKind.FAST_READ: {"window_ms"},
    CategoryKind.SLOW_ANALYSIS: {"window_ms", "slow_window_ms", "slow_probability"},
    CategoryKind.FAILURE_PRONE: {"window_ms", "error_probability", "variants", "error_cause"},
    CategoryKind.RANDOM_SCENARIO: {
        "high_latency_probability",
        "error_probability",
        "high_latency_ms",
    },
}


def _apply_override(policy: OutcomePolicy, name: str, raw: Mapping[str, Any]) -> OutcomePolicy:
    unknown = set(raw) - _ALLOWED_KEYS[policy.kind]
    if unknown:
        raise ConfigError(f"sampling.{name}: unknown keys {', '.join(sorted(unknown))}")
    window = None
    if "window_ms" in raw:
        window = _window(raw["window_ms"], f"sampling.{name}.window_ms")
    if isinstance(policy, FastReadPolicy):
        return FastReadPolicy(window=window or policy.window)
    if isinstance(policy, SlowAnalysisPolicy):
        return SlowAnalysisPolicy(
            window=window or policy.window,
            slow_window=(
                _window(raw["slow_window_ms"], f"sampling.{name}.slow_window_ms")
                if "slow_window_ms" in raw
                else policy.slow_window
            ),
            slow_probability=float(raw.get("slow_probability", policy.slow_probability)),
        )
    if isinstance(policy, FailurePronePolicy):
        variants = raw.get("variants", policy.variants)
        if not isinstance(variants, (list, tuple)) or not variants:
            raise ConfigError(f"sampling.{name}.variants must be a non-empty list")
        return FailurePronePolicy(
            window=window or policy.window,
            error_probability=float(raw.get("error_probability", policy.error_probability)),
            variants=tuple(str(v) for v in variants),
            error_cause=str(raw.get("error_cause", policy.error_cause)),
        )
    if isinstance(policy, RandomScenarioPolicy):
        return RandomScenarioPolicy(
            high_latency_probability=float(
                raw.get("high_latency_probability", policy.high_latency_probability)
            ),
            error_probability=float(raw.get("error_probability", policy.error_probability)),
            high_latency_ms=int(raw.get("high_latency_ms", policy.high_latency_ms)),
        )
    raise ConfigError(f"sampling.{name}: unsupported policy {type(policy).__name__}")


def build_policies(
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> dict[str, OutcomePolicy]:
    """Default policies with per-category overrides from configuration applied."""
    policies = default_policies()
    for name, raw in (overrides or {}).items():
        if name not in policies:
            raise ConfigError(
                f"sampling.{name}: unknown category (expected one of {', '.join(policies)})"
            )
        if not isinstance(raw, Mapping):
            raise ConfigError(f"sampling.{name} must be a mapping")
        try:
            policies[name] = _apply_override(policies[name], name, raw)
        except ConfigError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigError(f"sampling.{name}: {e}") from e
    return policies


class OutcomeSampler:
    """
    Draws outcomes per category from one seedable random source.

    Draws are synchronous, so concurrent requests on one event loop never
    interleave inside a single draw.
    """

    def __init__(
        self,
        policies: Mapping[str, OutcomePolicy] | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
    ):
        self._policies = dict(policies) if policies is not None else default_policies()
        self.rng = rng if rng is not None else random.Random(seed)

    @property
    def categories(self) -> list[str]:
        return list(self._policies)

    def policy(self, category: str) -> OutcomePolicy:
        try:
            return self._policies[category]
        except KeyError:
            raise KeyError(f"Unknown outcome category: {category}") from None

    def sample(self, category: str) -> OutcomeSample:
        """Draw a fresh outcome for the category."""
        return draw_outcome(self.policy(category), self.rng)
