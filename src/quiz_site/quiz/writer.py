"""Write quiz documents back out in the canonical markdown layout."""

from __future__ import annotations

from typing import List

from .model import Option, Question, QuizDocument
from .normalizer import canonical_answer_line, strip_answer_lines

__all__ = ["format_document", "format_question"]


def format_document(document: QuizDocument) -> str:
    """Return ``document`` as markdown the parser reads back unchanged."""
    sections = [f"# Quiz: {document.title}"]
    sections.extend(format_question(q) for q in document.questions)
    return "\n\n".join(sections).rstrip() + "\n"


def format_question(question: Question) -> str:
    lines: List[str] = [f"### {question.title}"]
    if question.prompt:
        lines.extend(["", question.prompt])
    if question.options:
        lines.append("")
        lines.extend(_option_line(option) for option in question.options)
    if question.trailer:
        lines.extend(["", question.trailer])
    if question.has_answer_block:
        lines.extend(["", *_answer_block(question)])
    lines.extend(["", "---"])
    return "\n".join(lines)


def _option_line(option: Option) -> str:
    # Continuation lines are indented so they stay part of the option.
    return f"- [ ] {option.letter}. " + "\n  ".join(option.text.split("\n"))


def _answer_block(question: Question) -> List[str]:
    block = ["<details>", "<summary>Show Answer</summary>", ""]
    if question.answer is None or question.answer.confident:
        body = strip_answer_lines(question.explanation)
        if question.correct_letters:
            block.append(canonical_answer_line(question.correct_letters))
    else:
        # Nothing was resolved, so the author's declarations stay for review.
        body = question.explanation.strip()
    if body:
        block.append(body)
    block.append("</details>")
    return block
