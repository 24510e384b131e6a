"""Spaced-repetition core: SM-2 variant, due/new partition and session mix.

I/O を持たない純粋な計算部分。永続化は ``store``、セッションの組み立ては
``flows.review_session`` が担当する。
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum, IntEnum
from typing import Iterable, Optional, Sequence, TypeVar


DEFAULT_EASE_FACTOR = 2500
MIN_EASE_FACTOR = 1300
RELEARN_DELAY = timedelta(minutes=10)
# new items may fill at most 1/5 (20%) of a session
NEW_ITEM_DIVISOR = 5
DEFAULT_CATEGORY = "KANJI"

# max_new に渡すと新規語彙の上限を設けない
UNLIMITED: None = None

T = TypeVar("T")


class Level(str, Enum):
    """JLPT difficulty tiers."""

    N5 = "N5"
    N4 = "N4"
    N3 = "N3"
    N2 = "N2"
    N1 = "N1"


class Quality(IntEnum):
    """Ratings emitted by the review screen. Values below 3 count as failures."""

    AGAIN = 1
    HARD = 3
    GOOD = 4
    EASY = 5


@dataclass(frozen=True, order=True)
class CategoryKey:
    """Canonical identifier for a set of categories studied together.

    カテゴリはソート・重複排除したタプルとして保持する。空タプルは
    「レベル内の全カテゴリ」を意味する。
    """

    categories: tuple[str, ...] = ()

    @classmethod
    def of(cls, categories: Iterable[str] | None) -> "CategoryKey":
        return cls(tuple(sorted(set(categories or ()))))

    def dumps(self) -> str:
        return json.dumps(list(self.categories), ensure_ascii=False)

    @classmethod
    def loads(cls, raw: str) -> "CategoryKey":
        return cls.of(json.loads(raw))


@dataclass(frozen=True)
class VocabularyItem:
    id: int
    level: Level
    category: str
    front: str
    back: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class VocabularyDraft:
    """A vocabulary row that has not been stored yet."""

    level: Level
    category: str
    front: str
    back: str


@dataclass(frozen=True)
class SchedulingState:
    """Per-(level, category key, item) scheduling record.

    ease_factor is stored scaled by 1000 (2500 == 2.5).
    """

    item_id: int
    level: Level
    category_key: CategoryKey = field(default_factory=CategoryKey)
    repetitions: int = 0
    ease_factor: int = DEFAULT_EASE_FACTOR
    interval: int = 0
    next_review: Optional[datetime] = None
    last_reviewed: Optional[datetime] = None
    record_id: Optional[int] = None

    def is_due(self, now: datetime) -> bool:
        return self.next_review is not None and self.next_review <= now


def compute_next_state(
    state: SchedulingState, quality: int, now: datetime | None = None
) -> SchedulingState:
    """Apply one review answer to ``state`` and return the next state.

    - quality < 3: repetitions/interval を 0 に戻し、10 分後に再出題（ease は据え置き）
    - quality >= 3: 1 日 → 6 日 → interval * ease の順に間隔を伸ばす
    - ease は ``ease + 100 * (quality - 5)`` で更新し 1300 を下限とする（Easy は据え置き、Good -100、Hard -200）

    quality is not range-checked.
    """

    now = now or datetime.now(UTC)
    repetitions = state.repetitions
    ease_factor = state.ease_factor
    interval = state.interval

    if quality < 3:
        repetitions = 0
        interval = 0
        next_review = now + RELEARN_DELAY
    else:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            # half-up rounding of interval * ease_factor / 1000
            interval = (interval * ease_factor + 500) // 1000
        repetitions += 1
        ease_factor = max(MIN_EASE_FACTOR, ease_factor + 100 * (quality - 5))
        next_review = now + timedelta(days=interval)

    return replace(
        state,
        repetitions=repetitions,
        ease_factor=ease_factor,
        interval=interval,
        next_review=next_review,
        last_reviewed=now,
    )


@dataclass(frozen=True)
class DueItem:
    item: VocabularyItem
    state: SchedulingState


@dataclass
class Partition:
    due: list[DueItem] = field(default_factory=list)
    new: list[VocabularyItem] = field(default_factory=list)


def partition(
    items: Iterable[VocabularyItem],
    records: Iterable[SchedulingState],
    now: datetime | None = None,
) -> Partition:
    """Split ``items`` into due and new.

    進捗レコードが無ければ new、next_review <= now なら due。
    それ以外（未来に予定済み / next_review が None）はどちらにも含めない。
    """

    now = now or datetime.now(UTC)
    by_item = {record.item_id: record for record in records}
    result = Partition()
    for item in items:
        state = by_item.get(item.id)
        if state is None:
            result.new.append(item)
        elif state.is_due(now):
            result.due.append(DueItem(item=item, state=state))
    return result


def new_item_cap(due_count: int, new_count: int, max_new: int | None) -> int:
    """Number of new items admitted into a session."""

    if max_new is UNLIMITED:
        return new_count
    # ceil(total / 5) in integers; 0.2 * 35 evaluates to 7.000000000000001
    ratio_cap = -(-(due_count + new_count) // NEW_ITEM_DIVISOR)
    return max(0, min(max_new, ratio_cap))


def compose(
    due: Sequence[T],
    new: Sequence[T],
    max_new: int | None = 20,
    rng: random.Random | None = None,
) -> list[T]:
    """Mix all due items with the first ``cap`` new items and shuffle the result."""

    cap = new_item_cap(len(due), len(new), max_new)
    queue: list[T] = [*due, *new[:cap]]
    (rng or random.Random()).shuffle(queue)
    return queue
