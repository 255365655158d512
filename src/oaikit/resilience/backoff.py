"""
Exponential backoff policy with symmetric jitter.

The policy itself holds only configuration: every call owns its own
BackoffState, so a single policy can be shared across concurrent calls.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class BackoffAction(str, Enum):
    """What the executor should do after a transient failure."""

    RETRY = "retry"
    STOP = "stop"


@dataclass(frozen=True)
class BackoffConfig:
    """Configuration for exponential backoff.

    Attributes:
        initial_interval: Delay before the first retry, in seconds
        multiplier: Growth factor applied per attempt
        max_interval: Upper bound for a single delay, in seconds
        max_elapsed_time: Total time budget in seconds (None = unbounded)
        randomization_factor: Symmetric jitter, delay * (1 +/- factor)
    """

    initial_interval: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 60.0
    max_elapsed_time: float | None = 900.0
    randomization_factor: float = 0.5

    def __post_init__(self) -> None:
        if self.initial_interval < 0 or self.max_interval < 0:
            raise ValueError("backoff intervals must be non-negative")
        if self.multiplier < 1:
            raise ValueError("backoff multiplier must be >= 1")
        if not 0 <= self.randomization_factor < 1:
            raise ValueError("randomization_factor must be in [0, 1)")
        if self.max_elapsed_time is not None and self.max_elapsed_time < 0:
            raise ValueError("max_elapsed_time must be non-negative")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BackoffConfig:
        """Create config from a mapping (e.g. a section of a config file).

        Unknown keys are ignored; missing keys keep their defaults.
        """
        if not data:
            return cls()

        known = {
            "initial_interval",
            "multiplier",
            "max_interval",
            "max_elapsed_time",
            "randomization_factor",
        }
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def no_retry(cls) -> BackoffConfig:
        """Create a config whose budget is exhausted by the first failure."""
        return cls(max_elapsed_time=0.0)


@dataclass(frozen=True)
class BackoffState:
    """Per-call backoff state.

    Attributes:
        attempt: Number of retries already scheduled
        elapsed: Seconds since the call started
        total_delay: Sum of all delays scheduled so far
    """

    attempt: int = 0
    elapsed: float = 0.0
    total_delay: float = 0.0

    def with_elapsed(self, elapsed: float) -> BackoffState:
        return replace(self, elapsed=elapsed)


@dataclass(frozen=True)
class BackoffDecision:
    """Result of consulting the policy."""

    action: BackoffAction
    delay: float = 0.0

    @property
    def should_retry(self) -> bool:
        return self.action == BackoffAction.RETRY

    @classmethod
    def stop(cls) -> BackoffDecision:
        return cls(BackoffAction.STOP)

    @classmethod
    def retry_after(cls, delay: float) -> BackoffDecision:
        return cls(BackoffAction.RETRY, delay)


class BackoffPolicy:
    """Exponential backoff with jitter.

    Example:
        >>> policy = BackoffPolicy(BackoffConfig(initial_interval=1.0, multiplier=2.0))
        >>> state = BackoffState()
        >>> state, decision = policy.next(state.with_elapsed(0.2))
        >>> decision.should_retry
        True
    """

    def __init__(
        self,
        config: BackoffConfig | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize backoff policy.

        Args:
            config: Backoff configuration
            rng: Random source for jitter (default: the random module)
        """
        self._config = config or BackoffConfig()
        self._rng = rng

    @property
    def config(self) -> BackoffConfig:
        return self._config

    def base_interval(self, attempt: int) -> float:
        """Delay for an attempt before jitter, capped at max_interval.

        Args:
            attempt: Retry number (0-based)

        Returns:
            Delay in seconds
        """
        cfg = self._config
        try:
            interval = cfg.initial_interval * (cfg.multiplier**attempt)
        except OverflowError:
            return cfg.max_interval
        return min(interval, cfg.max_interval)

    def randomize(self, interval: float) -> float:
        """Apply symmetric jitter to an interval, keeping it within max_interval."""
        factor = self._config.randomization_factor
        if factor == 0 or interval == 0:
            return interval
        uniform = self._rng.uniform if self._rng else random.uniform
        delta = factor * interval
        return min(uniform(interval - delta, interval + delta), self._config.max_interval)

    def next(
        self,
        state: BackoffState,
        *,
        retry_after: float | None = None,
    ) -> tuple[BackoffState, BackoffDecision]:
        """Decide whether to retry after a transient failure.

        A positive finite ``retry_after`` from the server replaces the computed
        delay. The call stops when the elapsed budget is already spent or
        would be overrun by the chosen delay; a zero budget never retries.

        Args:
            state: Current state; ``elapsed`` must be up to date
            retry_after: Optional server-provided delay in seconds

        Returns:
            The new state and the decision
        """
        budget = self._config.max_elapsed_time

        if budget is not None and state.elapsed >= budget:
            return state, BackoffDecision.stop()

        if retry_after is not None and math.isfinite(retry_after) and retry_after > 0:
            delay = retry_after
        else:
            delay = self.randomize(self.base_interval(state.attempt))

        if budget is not None and state.elapsed + delay > budget:
            return state, BackoffDecision.stop()

        new_state = replace(
            state,
            attempt=state.attempt + 1,
            total_delay=state.total_delay + delay,
        )
        return new_state, BackoffDecision.retry_after(delay)
