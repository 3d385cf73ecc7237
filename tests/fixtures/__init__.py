"""Shared testing fixtures for the quiz-site test suite."""

from .quizzes import (  # noqa: F401
    CAPITALS_QUIZ,
    LEGACY_QUIZ,
    MIXED_QUIZ,
    write_quiz,
)

__all__ = [
    "CAPITALS_QUIZ",
    "LEGACY_QUIZ",
    "MIXED_QUIZ",
    "write_quiz",
]
