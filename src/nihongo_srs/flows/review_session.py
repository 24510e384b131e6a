from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Iterable, Optional, Protocol, Sequence

from ..config import DEFAULT_MAX_NEW_PER_SESSION
from ..logging import logger
from ..srs import (
    DEFAULT_CATEGORY,
    CategoryKey,
    Level,
    SchedulingState,
    VocabularyItem,
    compose,
    compute_next_state,
    partition,
)


class ContentProvider(Protocol):
    def list_vocabulary(
        self, level: Level, categories: Iterable[str] | None = None
    ) -> list[VocabularyItem]: ...


class ProgressStore(Protocol):
    def query_progress(
        self,
        level: Level,
        category_key: CategoryKey,
        item_ids: Iterable[int] | None = None,
    ) -> list[SchedulingState]: ...

    def get_progress(
        self, level: Level, category_key: CategoryKey, item_id: int
    ) -> Optional[SchedulingState]: ...

    def put_progress(self, state: SchedulingState) -> SchedulingState: ...

    def list_level_progress(self, level: Level) -> list[SchedulingState]: ...


@dataclass(frozen=True)
class SessionCard:
    """An item queued for review; ``state`` is attached for due items."""

    item: VocabularyItem
    state: Optional[SchedulingState] = None


@dataclass(frozen=True)
class SessionStats:
    total: int = 0
    due: int = 0
    new: int = 0


@dataclass
class ReviewSession:
    queue: list[SessionCard] = field(default_factory=list)
    stats: SessionStats = field(default_factory=SessionStats)


@dataclass(frozen=True)
class LevelStats:
    total: int
    due: int
    new: int
    reviewed: int


@dataclass(frozen=True)
class CategorySummary:
    name: str
    count: int


class ReviewSessionFlow:
    """Build review sessions and record answers for one learner.

    レビューセッションの組み立て（due/new の抽出・混合）と、回答結果の
    SM-2 計算・永続化を仲介する。設定フラグはコンストラクタで明示的に受け取る。

    - unlimited_reviews: True なら SRS の絞り込みを行わず全語彙を出題
    - max_new: 1 セッションあたりの新規語彙上限（None で無制限）
    """

    def __init__(
        self,
        progress: ProgressStore,
        content: ContentProvider,
        *,
        unlimited_reviews: bool = False,
        max_new: int | None = DEFAULT_MAX_NEW_PER_SESSION,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.progress = progress
        self.content = content
        self.unlimited_reviews = unlimited_reviews
        self.max_new = max_new
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rng = rng or random.Random()

    def start_session(
        self, level: Level, categories: Sequence[str] = ()
    ) -> ReviewSession:
        key = CategoryKey.of(categories)
        items = self.content.list_vocabulary(level, key.categories)

        if self.unlimited_reviews:
            # due/new は表示用の統計値であり、スケジュール上の意味は持たない
            session = ReviewSession(
                queue=[SessionCard(item=item) for item in items],
                stats=SessionStats(total=len(items), due=0, new=len(items)),
            )
            self._log_session(level, key, session, mode="unlimited")
            return session

        records = self.progress.query_progress(level, key, [item.id for item in items])
        split = partition(items, records, self._clock())

        if not split.due and not split.new:
            session = ReviewSession(
                queue=[SessionCard(item=item) for item in items],
                stats=SessionStats(total=len(items), due=0, new=0),
            )
            self._log_session(level, key, session, mode="fallback")
            return session

        cards = compose(
            [SessionCard(item=d.item, state=d.state) for d in split.due],
            [SessionCard(item=item) for item in split.new],
            self.max_new,
            rng=self._rng,
        )
        session = ReviewSession(
            queue=cards,
            stats=SessionStats(total=len(cards), due=len(split.due), new=len(split.new)),
        )
        self._log_session(level, key, session, mode="srs")
        return session

    def answer(
        self,
        item_id: int,
        level: Level,
        categories: Sequence[str],
        quality: int,
    ) -> SchedulingState:
        """Apply ``quality`` to the item's state under this category selection and persist it."""

        key = CategoryKey.of(categories)
        current = self.progress.get_progress(level, key, item_id)
        if current is None:
            current = SchedulingState(item_id=item_id, level=Level(level), category_key=key)
        updated = self.progress.put_progress(
            compute_next_state(current, quality, self._clock())
        )
        logger.info(
            "review_answered",
            item_id=item_id,
            level=Level(level).value,
            categories=list(key.categories),
            quality=quality,
            repetitions=updated.repetitions,
            ease_factor=updated.ease_factor,
            interval=updated.interval,
            created=current.record_id is None,
        )
        return updated

    def level_stats(self, level: Level) -> LevelStats:
        """Totals for a level across every category selection.

        同じ語に複数のカテゴリキーの進捗がある場合は、最後にレビューされた
        レコードで due 判定する。
        """

        items = self.content.list_vocabulary(level)
        latest: dict[int, SchedulingState] = {}
        for record in self.progress.list_level_progress(level):
            seen = latest.get(record.item_id)
            if seen is None or _reviewed_at(record) >= _reviewed_at(seen):
                latest[record.item_id] = record

        now = self._clock()
        due = new = reviewed = 0
        for item in items:
            record = latest.get(item.id)
            if record is None:
                new += 1
                continue
            reviewed += 1
            if record.is_due(now):
                due += 1
        return LevelStats(total=len(items), due=due, new=new, reviewed=reviewed)

    def categories(self, level: Level) -> list[CategorySummary]:
        """Categories of a level with word counts; KANJI first, then by name."""

        counts: dict[str, int] = {}
        for item in self.content.list_vocabulary(level):
            name = item.category or DEFAULT_CATEGORY
            counts[name] = counts.get(name, 0) + 1
        ordered = sorted(counts.items(), key=lambda kv: (kv[0] != DEFAULT_CATEGORY, kv[0]))
        return [CategorySummary(name=name, count=count) for name, count in ordered]

    def _log_session(
        self, level: Level, key: CategoryKey, session: ReviewSession, *, mode: str
    ) -> None:
        logger.info(
            "review_session_started",
            level=Level(level).value,
            categories=list(key.categories),
            mode=mode,
            total=session.stats.total,
            due=session.stats.due,
            new=session.stats.new,
        )


def _reviewed_at(state: SchedulingState) -> datetime:
    return state.last_reviewed or datetime.min.replace(tzinfo=UTC)
