"""Nihongo SRS: JLPT vocabulary review API with an SM-2 style scheduler."""

__version__ = "0.1.0"
