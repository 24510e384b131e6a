"""Shared test helpers (fixed clock and vocabulary drafts)."""

from datetime import UTC, datetime, timedelta

from nihongo_srs.srs import Level, VocabularyDraft


NOW = datetime(2024, 4, 1, 9, 0, tzinfo=UTC)


class FixedClock:
    """Controllable replacement for ``datetime.now(UTC)``."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_drafts(count: int, *, level: Level = Level.N5, category: str = "Lesson01") -> list[VocabularyDraft]:
    return [
        VocabularyDraft(level=level, category=category, front=f"語{i:03d}", back=f"word {i}")
        for i in range(count)
    ]
