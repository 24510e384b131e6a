"""Review flows: セッション組み立てと回答処理。"""

from .review_session import (
    CategorySummary,
    LevelStats,
    ReviewSession,
    ReviewSessionFlow,
    SessionCard,
    SessionStats,
)

__all__ = [
    "CategorySummary",
    "LevelStats",
    "ReviewSession",
    "ReviewSessionFlow",
    "SessionCard",
    "SessionStats",
]
