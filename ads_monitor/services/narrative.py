"""Narrative service - paced requests to an external text-completion collaborator."""

import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from ..analytics.products import ProductActivity
from ..models.stat_pack import PeriodStatPack

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_DELAY_SECONDS = 1.0


class CompletionClient(Protocol):
    """Anything that turns a prompt into text with one blocking request."""

    def complete(self, prompt: str) -> str: ...


@dataclass
class PacedResult(Generic[T, R]):
    """Outcome of a paced batch: successes keyed by position, failures kept."""

    results: dict[int, R] = field(default_factory=dict)
    failures: dict[int, tuple[T, Exception]] = field(default_factory=dict)

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.failures)


def run_paced(
    items: Iterable[T],
    call: Callable[[T], R],
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> PacedResult[T, R]:
    """Call `call` once per item with a fixed delay between calls.

    A failing item is recorded and the batch continues.

    Args:
        items: Work items, processed in order
        call: One blocking request per item
        delay_seconds: Pause between consecutive calls (not after the last)
        sleep: Sleep function, injectable for tests

    Returns:
        PacedResult with per-position results and failures.
    """
    if delay_seconds < 0:
        raise ValueError("delay_seconds must be non-negative")

    outcome: PacedResult[T, R] = PacedResult()
    for position, item in enumerate(items):
        if position and delay_seconds:
            sleep(delay_seconds)
        try:
            outcome.results[position] = call(item)
        except Exception as e:
            logger.warning("Paced call %d failed: %s", position, e)
            outcome.failures[position] = (item, e)

    logger.info(
        "Paced batch finished: %d succeeded, %d failed",
        outcome.succeeded,
        outcome.failed,
    )
    return outcome


class NarrativeService:
    """Asks the completion collaborator to summarize evaluated dashboards.

    Usage:
        service = NarrativeService(client)
        text = service.summarize(stat_pack)
    """

    def __init__(
        self,
        client: CompletionClient,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    @staticmethod
    def prompt_for(stat_pack: PeriodStatPack) -> str:
        return (
            "Summarize this paid search performance dashboard for a marketing "
            "manager. Highlight year-over-year changes and any insights.\n\n"
            f"{stat_pack.to_json()}"
        )

    def summarize(self, stat_pack: PeriodStatPack) -> str:
        """One request carrying the stat pack JSON."""
        return self.client.complete(self.prompt_for(stat_pack))

    def summarize_many(
        self, stat_packs: Iterable[PeriodStatPack]
    ) -> PacedResult[PeriodStatPack, str]:
        """Summarize several dashboards, pacing the requests."""
        return run_paced(
            stat_packs,
            self.summarize,
            delay_seconds=self.delay_seconds,
            sleep=self.sleep,
        )

    @staticmethod
    def prompt_for_products(activity: ProductActivity) -> str:
        return (
            "Explain these Shopping product impression changes to a small business "
            "owner. Compare the last complete month with the month before, name the "
            "top newly active and inactive products by revenue, and call out the "
            "categories that lost the most conversion value.\n\n"
            f"{json.dumps(activity.to_dict(), indent=2, default=str)}"
        )

    def summarize_products(self, activity: ProductActivity) -> str:
        """One request carrying the product activity JSON."""
        return self.client.complete(self.prompt_for_products(activity))
