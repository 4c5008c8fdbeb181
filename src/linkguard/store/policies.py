"""Per-call timeout and retry policies for document store operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

_RETRY_KEYS = ("attempts", "initial_delay_seconds", "backoff_multiplier", "max_delay_seconds")


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule for store reads that raised."""

    attempts: int = 1
    initial_delay_seconds: float = 0.0
    backoff_multiplier: float = 1.0
    max_delay_seconds: float = 0.0

    def normalized_attempts(self) -> int:
        return max(1, int(self.attempts))

    def compute_delay(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* (counted from 1)."""
        if attempt < 1:
            return 0.0
        growth = self.backoff_multiplier ** (attempt - 1)
        delay = float(self.initial_delay_seconds * growth)
        if self.max_delay_seconds > 0 and delay > self.max_delay_seconds:
            return float(self.max_delay_seconds)
        return delay if delay > 0 else 0.0


@dataclass(frozen=True)
class StoreOperationPolicy:
    """
    Timeout and retry behaviour of a document store.

    The timeout applies to every call. Retries apply to reads only: an atomic
    batch that failed or timed out is surfaced as a single error and never
    resubmitted by the store.
    """

    timeout_seconds: Optional[float] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    @classmethod
    def default(cls) -> "StoreOperationPolicy":
        return cls()

    @classmethod
    def from_mapping(
        cls,
        mapping: Union[Mapping[str, Any], "StoreOperationPolicy", None],
        *,
        fallback: Optional["StoreOperationPolicy"] = None,
    ) -> "StoreOperationPolicy":
        """
        Build a policy from the ``operation_policy`` settings section.

        Retry settings are read from a nested ``retry`` mapping or from flat
        ``retry_<name>`` keys; the nested form wins. Anything not given is
        taken from *fallback*. A policy instance is returned unchanged.
        """
        if isinstance(mapping, StoreOperationPolicy):
            return mapping
        base = fallback or cls.default()
        if not isinstance(mapping, Mapping):
            return base

        nested = mapping.get("retry")
        nested = nested if isinstance(nested, Mapping) else {}
        retry_settings = {}
        for key in _RETRY_KEYS:
            value = nested.get(key, mapping.get(f"retry_{key}"))
            if value is not None:
                retry_settings[key] = value

        timeout = mapping.get("timeout_seconds", base.timeout_seconds)
        return cls(
            timeout_seconds=None if timeout is None else float(timeout),
            retry=_merge_retry(base.retry, retry_settings),
        )


def _merge_retry(base: RetryPolicy, settings: Mapping[str, Any]) -> RetryPolicy:
    def pick(key: str, convert: Callable[[Any], Any]) -> Any:
        return convert(settings[key]) if key in settings else getattr(base, key)

    return RetryPolicy(
        attempts=max(1, pick("attempts", int)),
        initial_delay_seconds=pick("initial_delay_seconds", float),
        backoff_multiplier=pick("backoff_multiplier", float),
        max_delay_seconds=pick("max_delay_seconds", float),
    )


DEFAULT_OPERATION_POLICY: StoreOperationPolicy = StoreOperationPolicy.default()
