from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..constants import FEEDBACK
from ..domain.models import Feedback, Recommendation
from ..results import Result
from .base import ResourceStore

ASPECTS = ("organization", "content", "venue", "staff")


@dataclass(frozen=True)
class FeedbackStats:
    average_rating: float = 0.0
    total_responses: int = 0
    recommendation_rate: float = 0.0  # percent answering "yes"
    aspect_ratings: dict[str, float] = field(default_factory=lambda: {a: 0.0 for a in ASPECTS})


def summarize_feedback(entries: Iterable[Feedback]) -> FeedbackStats:
    """Average ratings over all responses; a missing rating counts as 0."""
    items = list(entries)
    total = len(items)
    if total == 0:
        return FeedbackStats()
    average = sum(f.overall_rating or 0 for f in items) / total
    yes = sum(1 for f in items if f.recommend == Recommendation.YES)
    aspects = {
        aspect: sum(getattr(f, f"{aspect}_rating") or 0 for f in items) / total
        for aspect in ASPECTS
    }
    return FeedbackStats(
        average_rating=average,
        total_responses=total,
        recommendation_rate=yes / total * 100,
        aspect_ratings=aspects,
    )


class FeedbackStore(ResourceStore[Feedback]):
    entity = FEEDBACK
    entity_cls = Feedback
    FILTERS = frozenset({"event_id", "user_id", "recommend"})

    async def submit(self, data: dict[str, Any]) -> Result[Feedback]:
        return await self.create(data)

    async def stats(self, event_id: str) -> Result[FeedbackStats]:
        snap = await self.snapshot(event_id=event_id)
        if not snap.ok:
            return Result.failure(snap.error)  # type: ignore[arg-type]
        return Result.success(summarize_feedback(snap.value or []))
