from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import (  # noqa: E402
    CAPITALS_QUIZ,
    LEGACY_QUIZ,
    MIXED_QUIZ,
    write_quiz,
)


@pytest.fixture(autouse=True)
def quiz_home(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[Path]:
    """Point the workspace at a tmp dir and drop QUIZ_SITE_* settings."""

    for key in list(os.environ):
        if key.startswith("QUIZ_SITE_"):
            monkeypatch.delenv(key, raising=False)
    home = tmp_path / "quiz-home"
    monkeypatch.setenv("QUIZ_SITE_HOME", str(home))
    yield home


@pytest.fixture
def quiz_dir(tmp_path: Path) -> Path:
    """A directory holding the three sample quizzes."""

    root = tmp_path / "quizzes"
    write_quiz(root, "capitals.md", CAPITALS_QUIZ)
    write_quiz(root, "mixed.md", MIXED_QUIZ)
    write_quiz(root, "nested/optimizers_Questions.md", LEGACY_QUIZ)
    return root
