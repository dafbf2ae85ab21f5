"""Outcome policies decide whether a hit is recorded as intercepted.

The shipped policy is a placeholder coin flip, not a security verdict.  A real
decision engine only has to implement ``OutcomePolicy``.
"""

from __future__ import annotations

import random
from typing import Protocol, runtime_checkable

from honeytrap.sensor.models.enums import EndpointKind


@runtime_checkable
class OutcomePolicy(Protocol):
    def decide(self, origin_address: str, endpoint_kind: EndpointKind) -> bool:
        """Return ``True`` when the hit is intercepted."""
        ...


class RandomInterceptPolicy:
    """Intercept each hit independently with a fixed probability."""

    def __init__(self, probability: float = 0.8, rng: random.Random | None = None) -> None:
        if not 0.0 <= probability <= 1.0:
            msg = f"probability must be within [0, 1], got {probability}"
            raise ValueError(msg)
        self._probability = probability
        self._rng = rng or random.Random()  # noqa: S311

    @property
    def probability(self) -> float:
        return self._probability

    def decide(self, origin_address: str, endpoint_kind: EndpointKind) -> bool:
        return self._rng.random() < self._probability
