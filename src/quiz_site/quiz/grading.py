"""Server-side mirror of the browser grader plus a reader for rendered tags.

``grade_selection`` follows ``resources/quiz.js`` exactly so the client
behaviour can be exercised from pytest. ``read_correctness_tags`` recovers the
``data-correct`` tags from a rendered page.
"""

from __future__ import annotations

from enum import Enum
from html.parser import HTMLParser
from typing import Dict, Iterable, Mapping, Optional, Set

__all__ = ["GradeOutcome", "grade_selection", "read_correctness_tags"]


class GradeOutcome(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    NO_SELECTION = "no-selection"


def grade_selection(
    tags: Mapping[str, bool], selected: Iterable[str]
) -> GradeOutcome:
    """Grade ``selected`` letters against per-control correctness ``tags``.

    Exact set match only: every control's checked state must equal its tag.
    Letters that do not name a control are ignored, as a browser could never
    check them.
    """
    checked = {letter for letter in selected if letter in tags}
    if not checked:
        return GradeOutcome.NO_SELECTION
    for letter, correct in tags.items():
        if (letter in checked) != bool(correct):
            return GradeOutcome.INCORRECT
    return GradeOutcome.CORRECT


class _TagCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tags: Dict[int, Set[str]] = {}

    def handle_starttag(self, tag, attrs):
        if tag != "input":
            return
        values: Dict[str, Optional[str]] = dict(attrs)
        index = values.get("data-question-index")
        if index is None or "data-correct" not in values:
            return
        letters = self.tags.setdefault(int(index), set())
        if values.get("data-correct") == "true" and values.get("value"):
            letters.add(str(values["value"]))

    handle_startendtag = handle_starttag


def read_correctness_tags(html: str) -> Dict[int, frozenset[str]]:
    """Map page position to the letters tagged ``data-correct="true"``.

    Keys are the zero-based ``data-question-index`` values, which stay unique
    when question numbers repeat. Questions whose controls are all tagged
    false map to an empty set.
    """
    collector = _TagCollector()
    collector.feed(html)
    collector.close()
    return {
        index: frozenset(letters)
        for index, letters in sorted(collector.tags.items())
    }
