from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..srs import Level, SchedulingState
from .vocabulary import VocabularyCard


class SchedulingStateModel(BaseModel):
    """SRS progress for one item under one category selection.

    ease_factor は 1000 倍の整数（2500 = 2.5）。
    """

    model_config = ConfigDict(from_attributes=True)

    item_id: int
    level: Level
    categories: list[str]
    repetitions: int
    ease_factor: int
    interval: int
    next_review: datetime | None = None
    last_reviewed: datetime | None = None

    @classmethod
    def from_state(cls, state: SchedulingState) -> "SchedulingStateModel":
        return cls(
            item_id=state.item_id,
            level=state.level,
            categories=list(state.category_key.categories),
            repetitions=state.repetitions,
            ease_factor=state.ease_factor,
            interval=state.interval,
            next_review=state.next_review,
            last_reviewed=state.last_reviewed,
        )


class ReviewSessionRequest(BaseModel):
    """Start a review session for a level and category selection.

    categories が空ならレベル内の全カテゴリを対象とする。
    """

    level: Level
    categories: list[str] = Field(default_factory=list)


class ReviewQueueCard(BaseModel):
    card: VocabularyCard
    progress: SchedulingStateModel | None = None


class ReviewStats(BaseModel):
    total: int
    due: int
    new: int


class ReviewSessionResponse(BaseModel):
    queue: list[ReviewQueueCard]
    stats: ReviewStats


class ReviewAnswerRequest(BaseModel):
    """Submit a rating: 1=Again, 3=Hard, 4=Good, 5=Easy.

    範囲チェックは行わない（範囲外の値もそのまま SM-2 計算に渡す）。
    """

    item_id: int
    level: Level
    categories: list[str] = Field(default_factory=list)
    quality: int
