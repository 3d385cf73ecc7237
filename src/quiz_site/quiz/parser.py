"""Split quiz markdown into typed question records.

The accepted layout is::

    # Quiz: <title>

    ### Question <N> (<Type>)
    <prompt>

    - [ ] A. <option>
    - [ ] B. <option>

    <details>
    <summary>Show Answer</summary>

    **Correct Answers:** A
    <explanation>
    </details>

    ---

Each question section is tokenized on its own before any answer heuristic
runs, so a match in one question can never leak into another. Faults are kept
local: a broken section still yields a ``Question`` carrying diagnostics.
"""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .model import (
    Diagnostic,
    DiagnosticKind,
    Option,
    Question,
    QuestionType,
    QuizDocument,
)

__all__ = [
    "ANSWER_LINE_RE",
    "MalformedDocument",
    "find_answer_lines",
    "parse_answer_letters",
    "parse_document",
    "parse_question",
]


class MalformedDocument(ValueError):
    """Raised when a document contains no question sections at all."""


HEADER_RE = re.compile(
    r"^[ \t]*#{1,6}[ \t]*Question[ \t]+(?P<number>\d+)\b(?P<rest>[^\n]*)$",
    re.IGNORECASE | re.MULTILINE,
)
_TYPE_LABEL_RE = re.compile(r"\(([^)\n]*)\)")
_TITLE_RE = re.compile(
    r"^#[ \t]+(?:Quiz[ \t]*:[ \t]*)?(?P<title>\S[^\n]*?)[ \t#]*$",
    re.MULTILINE,
)
_OPTION_RE = re.compile(
    r"^[ \t]*[-*+][ \t]+\[[ xX]?\][ \t]*"
    r"(?:\(?(?P<letter>[A-Z])[.)][ \t]+)?"
    r"(?P<text>\S[^\n]*?)[ \t]*$"
)
_DETAILS_RE = re.compile(
    r"<details[^>]*>(?P<body>.*?)</details>", re.IGNORECASE | re.DOTALL
)
_SUMMARY_RE = re.compile(
    r"^\s*<summary[^>]*>.*?</summary>", re.IGNORECASE | re.DOTALL
)
_LEGACY_ANSWER_RE = re.compile(
    r"^[ \t]*\*\*(?:Correct[ \t]+)?(?:Answers?|Explanation)[ \t]*:?[ \t]*\*\*",
    re.IGNORECASE | re.MULTILINE,
)
_SEPARATOR_RE = re.compile(r"^[ \t]*(?:-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE)

# "**Correct Answers:** A, C" and the looser variants found in older files.
ANSWER_LINE_RE = re.compile(
    r"^[ \t]*(?:[-*][ \t]+)?\*{0,2}Correct[ \t]+Answers?\*{0,2}[ \t]*:"
    r"[ \t]*\*{0,2}[ \t]*(?P<rest>[^\n]*)$",
    re.IGNORECASE | re.MULTILINE,
)
_LETTER = r"(?:\([A-Z]\)|[A-Z])(?![A-Za-z0-9])"
_LETTER_RUN_RE = re.compile(
    rf"{_LETTER}(?:[ \t]*(?:,|&|/|\band\b)?[ \t]*{_LETTER})*"
)


def parse_answer_letters(text: str) -> Tuple[str, ...]:
    """Return the letters declared at the start of ``text``, in order.

    >>> parse_answer_letters("A, C (both layers)")
    ('A', 'C')
    """
    match = _LETTER_RUN_RE.match(text.strip())
    if not match:
        return ()
    letters: List[str] = []
    for letter in re.findall(r"[A-Z]", match.group(0)):
        if letter not in letters:
            letters.append(letter)
    return tuple(letters)


def find_answer_lines(text: str) -> List[re.Match[str]]:
    """Return every correct-answers declaration in ``text``."""
    return list(ANSWER_LINE_RE.finditer(text))


def parse_document(
    text: str,
    *,
    default_title: Optional[str] = None,
    source: Optional[Path] = None,
) -> QuizDocument:
    """Parse a whole quiz document.

    Raises :class:`MalformedDocument` when no ``Question <N>`` header exists.
    Every other defect is attached to the affected question as a diagnostic.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    headers = list(HEADER_RE.finditer(normalized))
    if not headers:
        label = source.name if source is not None else "document"
        raise MalformedDocument(f"No question sections found in {label}")

    title = _extract_title(normalized[: headers[0].start()]) or default_title
    questions: List[Question] = []
    for idx, header in enumerate(headers):
        end = (
            headers[idx + 1].start()
            if idx + 1 < len(headers)
            else len(normalized)
        )
        questions.append(
            parse_question(
                int(header.group("number")),
                header.group("rest"),
                normalized[header.end():end],
            )
        )

    return QuizDocument(
        title=title or "Quiz",
        questions=tuple(_check_numbering(questions)),
        source=source,
    )


def parse_question(number: int, header_rest: str, body: str) -> Question:
    """Build a ``Question`` from its header remainder and section body."""
    label_match = _TYPE_LABEL_RE.search(header_rest)
    raw_type = label_match.group(1).strip() if label_match else None
    qtype = QuestionType.from_label(raw_type)

    head, answer_block = _split_answer_block(body)
    prompt, options, trailer, relabeled = _split_options(head)

    diagnostics: List[Diagnostic] = []
    if not options:
        diagnostics.append(
            Diagnostic(DiagnosticKind.INCOMPLETE, "No parseable options.")
        )
    if relabeled:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.RELABELED_OPTIONS,
                "Duplicate option letters; options relabeled A, B, C, ...",
            )
        )

    correct: Tuple[str, ...] = ()
    explanation = ""
    if answer_block is None:
        diagnostics.append(
            Diagnostic(DiagnosticKind.MISSING_ANSWER, "No answer block.")
        )
    else:
        explanation = _SUMMARY_RE.sub("", answer_block, count=1).strip()
        declarations = find_answer_lines(explanation)
        if declarations:
            correct = tuple(
                sorted(parse_answer_letters(declarations[0].group("rest")))
            )

    return Question(
        number=number,
        type=qtype,
        prompt=prompt,
        trailer=trailer,
        options=tuple(options),
        correct_letters=correct,
        explanation=explanation,
        has_answer_block=answer_block is not None,
        raw_type=raw_type,
        diagnostics=tuple(diagnostics),
    )


def _extract_title(preamble: str) -> Optional[str]:
    match = _TITLE_RE.search(preamble)
    return match.group("title").strip() if match else None


def _split_answer_block(body: str) -> Tuple[str, Optional[str]]:
    details = _DETAILS_RE.search(body)
    if details:
        return body[: details.start()], details.group("body")

    # Older files put the answer straight after the options without a
    # <details> wrapper.
    search_from = 0
    for match in re.finditer(r"^[^\n]*$", body, re.MULTILINE):
        if _OPTION_RE.match(match.group(0)):
            search_from = match.end()
    legacy = _LEGACY_ANSWER_RE.search(body, search_from)
    if legacy:
        block = _SEPARATOR_RE.sub("", body[legacy.start():])
        return body[: legacy.start()], block
    return body, None


def _split_options(head: str) -> Tuple[str, List[Option], str, bool]:
    """Split the text above the answer block into prompt, options, trailer.

    Indented lines directly under an option continue its text. Any other
    line after the first option belongs to the trailer.
    """
    prompt_lines: List[str] = []
    trailer_lines: List[str] = []
    found: List[Tuple[Optional[str], str]] = []
    for line in head.split("\n"):
        match = _OPTION_RE.match(line)
        if match:
            found.append((match.group("letter"), match.group("text")))
        elif not found:
            prompt_lines.append(line)
        elif trailer_lines:
            trailer_lines.append(line)
        elif not line.strip():
            continue
        elif line[:1] in (" ", "\t"):
            letter, text = found[-1]
            found[-1] = (letter, f"{text}\n{line.strip()}")
        else:
            trailer_lines.append(line)

    prompt = _SEPARATOR_RE.sub("", "\n".join(prompt_lines)).strip()
    trailer = _SEPARATOR_RE.sub("", "\n".join(trailer_lines)).strip()
    options, relabeled = _assign_letters(found)
    return prompt, options, trailer, relabeled


def _assign_letters(
    found: Sequence[Tuple[Optional[str], str]],
) -> Tuple[List[Option], bool]:
    letters = [
        explicit or _sequential_letter(idx)
        for idx, (explicit, _) in enumerate(found)
    ]
    assigned = [letter for letter in letters if letter]
    relabeled = len(set(assigned)) != len(assigned)
    if relabeled:
        letters = [_sequential_letter(idx) for idx in range(len(found))]
    options = [
        Option(letter=letter, text=text.strip())
        for letter, (_, text) in zip(letters, found)
        if letter
    ]
    return options, relabeled


def _sequential_letter(index: int) -> str:
    return chr(ord("A") + index) if index < 26 else ""


def _check_numbering(questions: List[Question]) -> List[Question]:
    checked: List[Question] = []
    seen: set[int] = set()
    expected = 1
    for question in questions:
        message = None
        if question.number in seen:
            message = f"Question number {question.number} is duplicated."
        elif question.number != expected:
            message = f"Expected question {expected}, found {question.number}."
        if message:
            question = _with_diagnostic(
                question, Diagnostic(DiagnosticKind.NUMBERING, message)
            )
        seen.add(question.number)
        expected = question.number + 1
        checked.append(question)
    return checked


def _with_diagnostic(question: Question, diagnostic: Diagnostic) -> Question:
    return replace(question, diagnostics=question.diagnostics + (diagnostic,))
