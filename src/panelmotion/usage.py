"""Usage accounting: pricing, usage event factories and an in-memory ledger."""

import logging
from collections import defaultdict
from typing import Dict, List, Protocol, runtime_checkable

from .models.usage import UsageEvent

logger = logging.getLogger(__name__)

# All prices are in USD per million tokens, unless otherwise specified.
USD_PER_MILLION_TOKENS = {
    "claude-sonnet-4-20250514": {"prompt": 3.00, "completion": 15.00},
    "claude-3-5-haiku-20241022": {"prompt": 0.80, "completion": 4.00},
}

IMAGEN_PER_IMAGE = 0.02
VEO_PER_SECOND = 0.01


def calculate_text_cost(prompt_tokens: int, completion_tokens: int, model: str) -> float:
    """Return the USD cost of a text request, or 0.0 for unknown models."""
    pricing = USD_PER_MILLION_TOKENS.get(model)
    if not pricing:
        return 0.0
    prompt_cost = (prompt_tokens / 1_000_000) * pricing["prompt"]
    completion_cost = (completion_tokens / 1_000_000) * pricing["completion"]
    return prompt_cost + completion_cost


def text_usage(task: str, prompt_tokens: int, completion_tokens: int, model: str) -> UsageEvent:
    return UsageEvent(
        task=task,
        tokens=prompt_tokens + completion_tokens,
        cost_usd=calculate_text_cost(prompt_tokens, completion_tokens, model),
    )


def image_usage(task: str, image_count: int = 1) -> UsageEvent:
    return UsageEvent(task=task, images=image_count, cost_usd=image_count * IMAGEN_PER_IMAGE)


def video_usage(task: str, duration_seconds: int) -> UsageEvent:
    return UsageEvent(
        task=task,
        video_seconds=duration_seconds,
        cost_usd=duration_seconds * VEO_PER_SECOND,
    )


@runtime_checkable
class UsageLedger(Protocol):
    """Sink for usage events. Recording is fire-and-forget."""

    def record(self, event: UsageEvent) -> None:
        ...


class InMemoryUsageLedger:
    """Keeps usage events in memory and logs each one."""

    def __init__(self) -> None:
        self._records: List[UsageEvent] = []

    @property
    def records(self) -> List[UsageEvent]:
        return list(self._records)

    @property
    def total_cost(self) -> float:
        return sum(r.cost_usd for r in self._records)

    def record(self, event: UsageEvent) -> None:
        self._records.append(event)
        logger.debug(f"Usage: {event.task} (${event.cost_usd:.4f})")

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Aggregate counts and cost per task."""
        totals: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"calls": 0, "tokens": 0, "images": 0, "video_seconds": 0, "cost_usd": 0.0}
        )
        for r in self._records:
            entry = totals[r.task]
            entry["calls"] += 1
            entry["tokens"] += r.tokens or 0
            entry["images"] += r.images or 0
            entry["video_seconds"] += r.video_seconds or 0
            entry["cost_usd"] += r.cost_usd
        return dict(totals)

    def clear(self) -> None:
        self._records.clear()
