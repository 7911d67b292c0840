"""Seedable distributions for outcome sampling and payload generation."""

from .distributions import (
    BernoulliDistribution,
    CategoricalDistribution,
    Distribution,
    UniformDistribution,
    UniformIntDistribution,
)

__all__ = [
    "Distribution",
    "UniformDistribution",
    "UniformIntDistribution",
    "CategoricalDistribution",
    "BernoulliDistribution",
]
