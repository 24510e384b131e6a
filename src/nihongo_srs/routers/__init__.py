"""Router package exports."""

from . import config, data, health, review, vocabulary

__all__ = [
    "config",
    "data",
    "health",
    "review",
    "vocabulary",
]
