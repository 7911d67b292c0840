"""
Statistical distributions for synthetic outcome generation.

Every distribution draws from an explicit random.Random so a seeded generator
reproduces the same sequence of latencies, branches and payload values.
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class Distribution(ABC):
    """Base class for statistical distributions."""

    @abstractmethod
    def sample(self, rng: random.Random) -> Any:
        """Draw a single sample from the distribution."""
        pass


@dataclass
class UniformDistribution(Distribution):
    """Uniform distribution over [low, high]."""

    low: float = 0.0
    high: float = 1.0

    def sample(self, rng: random.Random) -> float:
        return rng.uniform(self.low, self.high)


@dataclass
class UniformIntDistribution(Distribution):
    """
    Uniform integer distribution over the half-open window [low, high).

    Good for: simulated latencies in whole milliseconds, counters, ids.
    """

    low: int = 0
    high: int = 1

    def __post_init__(self):
        if self.low < 0:
            raise ValueError(f"low must be non-negative, got {self.low}")
        if self.high <= self.low:
            raise ValueError(f"window [{self.low}, {self.high}) is empty")

    def sample(self, rng: random.Random) -> int:
        return rng.randrange(self.low, self.high)


@dataclass
class CategoricalDistribution(Distribution):
    """
    Categorical distribution - discrete choices with weights.

    Good for: alert types, route mixes, status variants.

    Example:
        dist = CategoricalDistribution(
            categories=["engine", "navigation"],
            weights=[0.6, 0.4]
        )
    """

    categories: list[Any] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)

    def __post_init__(self):
        if not self.weights and self.categories:
            self.weights = [1.0] * len(self.categories)
        if len(self.weights) != len(self.categories):
            raise ValueError("CategoricalDistribution needs one weight per category")
        total = sum(self.weights)
        if total > 0:
            self.weights = [w / total for w in self.weights]

    def sample(self, rng: random.Random) -> Any:
        if not self.categories:
            raise ValueError("CategoricalDistribution requires at least one category")
        return rng.choices(self.categories, weights=self.weights)[0]


@dataclass
class BernoulliDistribution(Distribution):
    """
    Bernoulli distribution - single binary outcome.

    Good for: error injection, slow-path selection.
    """

    p: float = 0.5

    def __post_init__(self):
        if not 0.0 <= self.p <= 1.0:
            raise ValueError(f"probability must be in [0, 1], got {self.p}")

    def sample(self, rng: random.Random) -> float:
        return 1.0 if rng.random() < self.p else 0.0

    def sample_bool(self, rng: random.Random) -> bool:
        """Return boolean outcome."""
        return rng.random() < self.p
