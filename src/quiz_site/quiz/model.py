"""Typed records produced by the quiz parser and normalizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Tuple

__all__ = [
    "AnswerSource",
    "Diagnostic",
    "DiagnosticKind",
    "Option",
    "Question",
    "QuestionType",
    "QuizDocument",
    "ResolvedAnswer",
]


class QuestionType(Enum):
    """Supported question kinds."""

    TRUE_FALSE = "True/False"
    MULTIPLE_CHOICE = "Multiple Choice"
    MULTI_SELECT = "Multi-Select"
    UNKNOWN = "Unknown"

    @property
    def single_answer(self) -> bool:
        return self in (QuestionType.TRUE_FALSE, QuestionType.MULTIPLE_CHOICE)

    @classmethod
    def from_label(cls, label: Optional[str]) -> "QuestionType":
        """Map a header label such as ``"multi select"`` to a member."""
        if not label:
            return cls.UNKNOWN
        key = "".join(ch for ch in label.lower() if ch.isalnum())
        return _TYPE_ALIASES.get(key, cls.UNKNOWN)


_TYPE_ALIASES = {
    "truefalse": QuestionType.TRUE_FALSE,
    "tf": QuestionType.TRUE_FALSE,
    "trueorfalse": QuestionType.TRUE_FALSE,
    "multiplechoice": QuestionType.MULTIPLE_CHOICE,
    "singlechoice": QuestionType.MULTIPLE_CHOICE,
    "mcq": QuestionType.MULTIPLE_CHOICE,
    "multiselect": QuestionType.MULTI_SELECT,
    "multipleselect": QuestionType.MULTI_SELECT,
    "multipleselection": QuestionType.MULTI_SELECT,
    "multipleanswer": QuestionType.MULTI_SELECT,
    "multipleanswers": QuestionType.MULTI_SELECT,
    "selectall": QuestionType.MULTI_SELECT,
    "selectallthatapply": QuestionType.MULTI_SELECT,
}


class DiagnosticKind(Enum):
    """Non-fatal defects attached to a question."""

    INCOMPLETE = "incomplete"
    MISSING_ANSWER = "missing-answer"
    INVALID_ARITY = "invalid-arity"
    CORRECT_ANSWER_MISMATCH = "correct-answer-mismatch"
    LOW_CONFIDENCE = "low-confidence"
    DUPLICATE_ANSWER_LINE = "duplicate-answer-line"
    UNKNOWN_ANSWER_LETTER = "unknown-answer-letter"
    INFERRED_TYPE = "inferred-type"
    PLACEHOLDER = "placeholder"
    NUMBERING = "numbering"
    RELABELED_OPTIONS = "relabeled-options"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class AnswerSource(Enum):
    """Where a question's correct letters came from, strongest first."""

    EXPLICIT = "explicit"
    CHECKMARK = "checkmark"
    PHRASE = "phrase"
    DEFAULT = "default"
    NONE = "none"


@dataclass(frozen=True)
class ResolvedAnswer:
    """Outcome of answer inference for a single question.

    ``letters`` is what the question ends up with. ``heuristic_letters`` keeps
    the checkmark/phrase evidence even when an explicit declaration won, so a
    report can show both sides of a mismatch.
    """

    source: AnswerSource
    letters: frozenset[str] = frozenset()
    heuristic_letters: frozenset[str] = frozenset()

    @property
    def confident(self) -> bool:
        return self.source not in (AnswerSource.DEFAULT, AnswerSource.NONE)

    @property
    def sorted_letters(self) -> Tuple[str, ...]:
        return tuple(sorted(self.letters))


@dataclass(frozen=True)
class Option:
    letter: str
    text: str


@dataclass(frozen=True)
class Question:
    """One parsed quiz question.

    ``correct_letters`` is unverified straight out of the parser and only
    guaranteed to be an option-backed, sorted tuple after normalization.
    ``trailer`` holds free text written between the options and the answer
    block (hints, notes, code).
    """

    number: int
    type: QuestionType
    prompt: str
    options: Tuple[Option, ...] = ()
    correct_letters: Tuple[str, ...] = ()
    explanation: str = ""
    has_answer_block: bool = True
    raw_type: Optional[str] = None
    answer: Optional[ResolvedAnswer] = None
    diagnostics: Tuple[Diagnostic, ...] = ()
    trailer: str = ""

    @property
    def letters(self) -> Tuple[str, ...]:
        return tuple(option.letter for option in self.options)

    @property
    def title(self) -> str:
        if self.type is QuestionType.UNKNOWN:
            return f"Question {self.number}"
        return f"Question {self.number} ({self.type.value})"

    def option_for(self, letter: str) -> Optional[Option]:
        for option in self.options:
            if option.letter == letter:
                return option
        return None

    def has(self, kind: DiagnosticKind) -> bool:
        return any(d.kind is kind for d in self.diagnostics)


@dataclass(frozen=True)
class QuizDocument:
    title: str
    questions: Tuple[Question, ...]
    source: Optional[Path] = field(default=None, compare=False)

    def iter_diagnostics(self) -> Iterator[Tuple[int, Diagnostic]]:
        for question in self.questions:
            for diagnostic in question.diagnostics:
                yield question.number, diagnostic
