"""Parse, normalize and render self-study quiz markdown."""

from __future__ import annotations

from .grading import GradeOutcome, grade_selection, read_correctness_tags
from .model import (
    AnswerSource,
    Diagnostic,
    DiagnosticKind,
    Option,
    Question,
    QuestionType,
    QuizDocument,
    ResolvedAnswer,
)
from .normalizer import (
    canonical_answer_line,
    normalize_document,
    normalize_question,
)
from .parser import MalformedDocument, parse_document, parse_question
from .renderer import IndexEntry, render_index, render_page, render_question
from .writer import format_document

__all__ = [
    "GradeOutcome",
    "grade_selection",
    "read_correctness_tags",
    "AnswerSource",
    "Diagnostic",
    "DiagnosticKind",
    "Option",
    "Question",
    "QuestionType",
    "QuizDocument",
    "ResolvedAnswer",
    "canonical_answer_line",
    "normalize_document",
    "normalize_question",
    "MalformedDocument",
    "parse_document",
    "parse_question",
    "IndexEntry",
    "render_index",
    "render_page",
    "render_question",
    "format_document",
]
