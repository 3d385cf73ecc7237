"""Resolve and repair the correct-answer set of parsed questions.

Evidence is weighed in a fixed order and the first decisive source wins:

1. an explicit ``**Correct Answers:** A, C`` declaration;
2. a check glyph (✅, ✓, ...) next to an option's text or label;
3. a correctness phrase ("is correct", "best choice", ...) attached to the
   nearest reference to the option in the same clause, unless a negation
   shares a clause with any reference to that option;
4. a per-type default, always flagged ``low-confidence``.

Heuristic evidence is still computed when an explicit declaration exists so
that disagreements surface as ``correct-answer-mismatch`` diagnostics. The
result never names a letter that is not one of the question's options.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence, Set, Tuple

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
from .parser import ANSWER_LINE_RE, find_answer_lines, parse_answer_letters

__all__ = [
    "CHECK_GLYPHS",
    "CORRECT_PHRASES",
    "NEGATION_PHRASES",
    "canonical_answer_line",
    "checkmark_letters",
    "normalize_document",
    "normalize_question",
    "phrase_letters",
    "strip_answer_lines",
]

CHECK_GLYPHS: Tuple[str, ...] = ("✅", "✔️", "✔", "✓", "☑️", "☑")

CORRECT_PHRASES: Tuple[str, ...] = (
    "is correct",
    "are correct",
    "is true",
    "are true",
    "correctly",
    "right answer",
    "right choice",
    "correct answer",
    "correct choice",
    "correct option",
    "best choice",
    "best option",
    "best answer",
    "answer is",
    "should be selected",
)

NEGATION_PHRASES: Tuple[str, ...] = (
    "incorrect",
    "not correct",
    "isn't correct",
    "aren't correct",
    "not true",
    "isn't true",
    "aren't true",
    "is false",
    "are false",
    "not the right",
    "not the correct",
    "not the best",
    "wrong",
    "inaccurate",
    "should not be selected",
    "shouldn't be selected",
)

# Diagnostics the parser owns; everything else is recomputed on each pass.
_PARSER_KINDS = frozenset(
    {
        DiagnosticKind.INCOMPLETE,
        DiagnosticKind.MISSING_ANSWER,
        DiagnosticKind.NUMBERING,
        DiagnosticKind.RELABELED_OPTIONS,
    }
)

_PLACEHOLDER_RE = re.compile(
    r"\[(?:Need to manually determine|Manual review required)\]",
    re.IGNORECASE,
)
_GLYPH = "(?:" + "|".join(re.escape(g) for g in CHECK_GLYPHS) + ")"
_EMPHASIS_RE = re.compile(r"\*\*|__")
_BOUNDARY_RE = re.compile(r"[.!?;,](?=\s|$)|\n")
_QUOTE_LINE_RE = re.compile(r"^[ \t]*>[^\n]*$", re.MULTILINE)
_CORRECT_RE = re.compile(
    r"(?<![A-Za-z])(?:"
    + "|".join(re.escape(p) for p in CORRECT_PHRASES)
    + r")(?![A-Za-z])",
    re.IGNORECASE,
)
_NEGATION_RE = re.compile(
    r"(?<![A-Za-z])(?:"
    + "|".join(re.escape(p) for p in NEGATION_PHRASES)
    + r")(?![A-Za-z])",
    re.IGNORECASE,
)
# Direction a correctness phrase points in; the rest bind to the closest side.
_FORWARD_PHRASES = frozenset({"answer is"})
_BACKWARD_PHRASES = frozenset(
    {
        "is correct",
        "are correct",
        "is true",
        "are true",
        "correctly",
        "should be selected",
    }
)
_CHAIN_GAP_RE = re.compile(r"[ \t]*(?:\band\b|&|/)?[ \t]*", re.IGNORECASE)

# (letter, start, end) of an option mention in an explanation.
_Span = Tuple[str, int, int]

_LETTER_LIST_RE = re.compile(
    r"(?<![A-Za-z0-9])\(?[A-Z](?:[ \t]*(?:,|&|\band\b)[ \t]*(?:and[ \t]+)?"
    r"[A-Z])+\)?(?![A-Za-z0-9])"
)


def normalize_document(document: QuizDocument) -> QuizDocument:
    """Return ``document`` with every question normalized."""
    return replace(
        document,
        questions=tuple(normalize_question(q) for q in document.questions),
    )


def normalize_question(question: Question) -> Question:
    """Resolve ``question.correct_letters`` and repair its explanation."""
    diagnostics: List[Diagnostic] = [
        d for d in question.diagnostics if d.kind in _PARSER_KINDS
    ]
    declarations = find_answer_lines(question.explanation)
    body = strip_answer_lines(question.explanation)

    explicit, unknown = _declared_letters(
        [m.group("rest") for m in declarations], question.options
    )
    checkmark = checkmark_letters(body, question.options)
    phrase = phrase_letters(body, question.options)
    heuristic = frozenset(checkmark | phrase)

    qtype = question.type
    if qtype is QuestionType.UNKNOWN and question.options:
        qtype = _infer_type(question.options, explicit or heuristic)
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.INFERRED_TYPE,
                f"Header type {question.raw_type or '(none)'!r} not "
                f"recognized; treated as {qtype.value}.",
            )
        )

    answer = _resolve(qtype, question.options, explicit, checkmark, phrase)
    answer = replace(answer, heuristic_letters=heuristic)
    letters = answer.sorted_letters

    if unknown:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.UNKNOWN_ANSWER_LETTER,
                "Declared answer letter(s) "
                f"{', '.join(sorted(unknown))} match no option.",
            )
        )
    if len(declarations) > 1:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.DUPLICATE_ANSWER_LINE,
                f"{len(declarations)} answer declarations collapsed into one.",
            )
        )
    if answer.source is AnswerSource.EXPLICIT and heuristic and (
        heuristic != answer.letters
    ):
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.CORRECT_ANSWER_MISMATCH,
                f"Declared {_join(answer.letters)} but the explanation "
                f"points to {_join(heuristic)}.",
            )
        )
    if not answer.confident:
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.LOW_CONFIDENCE,
                "No answer evidence found; "
                + (
                    f"defaulted to {_join(answer.letters)}."
                    if answer.letters
                    else "no option could be chosen."
                ),
            )
        )
    if _arity_invalid(qtype, letters):
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.INVALID_ARITY,
                f"{qtype.value} question has {len(letters)} correct "
                "answer(s).",
            )
        )
    if _PLACEHOLDER_RE.search(question.explanation):
        diagnostics.append(
            Diagnostic(
                DiagnosticKind.PLACEHOLDER,
                "Explanation still contains a manual-review placeholder.",
            )
        )

    explanation = body
    if answer.confident and letters:
        explanation = canonical_answer_line(letters)
        if body:
            explanation += "\n\n" + body
    elif declarations:
        # Unresolvable declarations stay so the author can correct them.
        explanation = question.explanation.strip()

    return replace(
        question,
        type=qtype,
        correct_letters=letters,
        explanation=explanation,
        answer=answer,
        diagnostics=tuple(diagnostics),
    )


def canonical_answer_line(letters: Iterable[str]) -> str:
    return f"**Correct Answers:** {', '.join(sorted(set(letters)))}"


def strip_answer_lines(text: str) -> str:
    """Remove every correct-answers declaration from ``text``."""
    stripped = ANSWER_LINE_RE.sub("", text)
    stripped = re.sub(r"\n[ \t]*(?=\n)", "\n", stripped)
    return re.sub(r"\n{3,}", "\n\n", stripped).strip()


def checkmark_letters(text: str, options: Sequence[Option]) -> Set[str]:
    """Letters whose option text or label sits right next to a check glyph."""
    plain = _EMPHASIS_RE.sub("", text)
    spans: List[_Span] = []
    for option in options:
        for pattern in _checkmark_patterns(option):
            for match in pattern.finditer(plain):
                spans.append((option.letter, match.start(), match.end()))

    # "✅ Paris is the capital" must not also credit an option "Paris".
    return {letter for letter, _, _ in _unshadowed(spans)}


def phrase_letters(text: str, options: Sequence[Option]) -> Set[str]:
    """Letters a correctness phrase is attached to and that are never negated.

    Quoted source lines (``> ...``) are ignored: they quote lecture material,
    not a verdict about the options.
    """
    plain = _QUOTE_LINE_RE.sub("", _EMPHASIS_RE.sub("", text))
    plain = plain.replace("’", "'")
    available = {option.letter for option in options}
    refs = _unshadowed(
        [
            (option.letter, start, end)
            for option in options
            for start, end in _reference_spans(plain, option, available)
        ]
    )
    vetoed = {
        letter for letter, start, end in refs if _negated(plain, start, end)
    }
    confirmed: Set[str] = set()
    for phrase in _CORRECT_RE.finditer(plain):
        confirmed |= _bound_letters(plain, phrase, refs)
    return confirmed - vetoed


def _declared_letters(
    declarations: Sequence[str], options: Sequence[Option]
) -> Tuple[frozenset[str], Set[str]]:
    available = {option.letter for option in options}
    for rest in declarations:
        letters = parse_answer_letters(rest)
        if not letters:
            letters = _letters_by_text(rest, options)
        if not letters:
            continue
        known = frozenset(ch for ch in letters if ch in available)
        return known, set(letters) - available
    return frozenset(), set()


def _letters_by_text(rest: str, options: Sequence[Option]) -> Tuple[str, ...]:
    """Match declarations like ``Correct Answer: False`` to option text."""
    wanted = _EMPHASIS_RE.sub("", rest).strip().rstrip(".").casefold()
    if not wanted:
        return ()
    return tuple(
        option.letter
        for option in options
        if option.text.strip().rstrip(".").casefold() == wanted
    )


def _resolve(
    qtype: QuestionType,
    options: Sequence[Option],
    explicit: frozenset[str],
    checkmark: Set[str],
    phrase: Set[str],
) -> ResolvedAnswer:
    if explicit:
        return ResolvedAnswer(AnswerSource.EXPLICIT, explicit)
    if checkmark:
        return ResolvedAnswer(
            AnswerSource.CHECKMARK, frozenset(checkmark | phrase)
        )
    if phrase:
        return ResolvedAnswer(AnswerSource.PHRASE, frozenset(phrase))
    fallback = _default_letter(qtype, options)
    if fallback is None:
        return ResolvedAnswer(AnswerSource.NONE)
    return ResolvedAnswer(AnswerSource.DEFAULT, frozenset({fallback}))


def _default_letter(
    qtype: QuestionType, options: Sequence[Option]
) -> Optional[str]:
    if not options:
        return None
    if qtype is QuestionType.TRUE_FALSE:
        for option in options:
            if option.text.strip().rstrip(".").casefold() == "false":
                return option.letter
    return options[0].letter


def _infer_type(
    options: Sequence[Option], evidence: frozenset[str]
) -> QuestionType:
    texts = {option.text.strip().rstrip(".").casefold() for option in options}
    if texts == {"true", "false"}:
        return QuestionType.TRUE_FALSE
    if len(evidence) > 1:
        return QuestionType.MULTI_SELECT
    return QuestionType.MULTIPLE_CHOICE


def _arity_invalid(qtype: QuestionType, letters: Sequence[str]) -> bool:
    if qtype.single_answer:
        return len(letters) != 1
    if qtype is QuestionType.MULTI_SELECT:
        return not letters
    return False


def _checkmark_patterns(option: Option) -> List[re.Pattern[str]]:
    letter = option.letter
    label = rf"(?:\({letter}\)|{letter}[.)])"
    patterns = [
        re.compile(rf"{_GLYPH}[ \t]*{label}(?![A-Za-z0-9])"),
    ]
    text = _text_pattern(option.text)
    if text:
        patterns.append(
            re.compile(
                rf"{_GLYPH}[ \t]*(?:{label}[ \t]*)?{text}(?![A-Za-z0-9])",
                re.IGNORECASE,
            )
        )
        patterns.append(
            re.compile(
                rf"(?<![A-Za-z0-9]){text}[ \t]*{_GLYPH}", re.IGNORECASE
            )
        )
    return patterns


def _text_pattern(text: str) -> str:
    words = _EMPHASIS_RE.sub("", text).split()
    return r"\s+".join(re.escape(word) for word in words)


def _reference_spans(
    text: str, option: Option, available: Set[str]
) -> Iterable[Tuple[int, int]]:
    letter = option.letter
    letter_patterns = (
        rf"\({letter}\)",
        rf"(?<![A-Za-z0-9]){letter}\)",
        rf"(?i:\b(?:option|choice|answer|statement)s?)[ \t]+\(?{letter}\b\)?",
        rf"(?<![A-Za-z0-9'’]){letter}(?=[ \t]+(?:is|are|was|would|should)\b)",
        rf"^[ \t]*(?:[-*][ \t]+)?{letter}[.:](?=[ \t])",
        rf"(?<=\b[Ii]s[ \t]){letter}(?![A-Za-z0-9'])",
        rf"(?<=\b[Bb]e[ \t]){letter}(?![A-Za-z0-9'])",
    )
    for pattern in letter_patterns:
        for match in re.finditer(pattern, text, re.MULTILINE):
            yield match.start(), match.end()
    for match in _LETTER_LIST_RE.finditer(text):
        members = set(re.findall(r"[A-Z]", match.group(0)))
        if letter in members and members <= available:
            yield match.start(), match.end()
    option_text = _text_pattern(option.text)
    if option_text:
        pattern = rf"(?<![A-Za-z0-9]){option_text}(?![A-Za-z0-9])"
        for match in re.finditer(pattern, text, re.IGNORECASE):
            yield match.start(), match.end()


def _unshadowed(spans: Sequence[_Span]) -> List[_Span]:
    """Drop spans that sit inside a longer span of a different option."""
    return [
        (letter, start, end)
        for letter, start, end in spans
        if not any(
            other != letter
            and o_start <= start
            and end <= o_end
            and (o_end - o_start) > (end - start)
            for other, o_start, o_end in spans
        )
    ]


def _negated(text: str, start: int, end: int) -> bool:
    """Whether a negation outside the reference shares its clause."""
    clause_start = 0
    for boundary in _BOUNDARY_RE.finditer(text, 0, start):
        clause_start = boundary.end()
    following = _BOUNDARY_RE.search(text, end)
    clause_end = following.start() if following else len(text)

    return any(
        negation.end() <= start or negation.start() >= end
        for negation in _NEGATION_RE.finditer(text, clause_start, clause_end)
    )


def _bound_letters(
    text: str, phrase: re.Match[str], refs: Sequence[_Span]
) -> Set[str]:
    """Letters of the reference(s) a correctness phrase is attached to.

    "answer is" looks forward, "is correct" and friends look back, noun
    phrases such as "best choice" take the closest side. A tie across both
    sides is ambiguous and confirms nothing.
    """
    key = " ".join(phrase.group(0).lower().split())
    p_start, p_end = phrase.span()
    before: List[Tuple[int, _Span]] = []
    after: List[Tuple[int, _Span]] = []
    for ref in refs:
        _, start, end = ref
        if start < p_start and end <= p_end:
            if not _BOUNDARY_RE.search(text, min(end, p_start), p_start):
                before.append((max(0, p_start - end), ref))
        elif end > p_end and start >= p_start:
            if not _BOUNDARY_RE.search(text, p_end, max(start, p_end)):
                after.append((max(0, start - p_end), ref))

    if key in _FORWARD_PHRASES:
        before = []
    elif key in _BACKWARD_PHRASES:
        after = []
    candidates = before + after
    if not candidates:
        return set()
    best = min(distance for distance, _ in candidates)
    chosen = [ref for distance, ref in candidates if distance == best]
    on_left = [ref for distance, ref in before if distance == best]
    if on_left and len(on_left) != len(chosen):
        return set()
    side = before if on_left else after
    chosen.extend(
        _chain(text, chosen, [ref for _, ref in side], left=bool(on_left))
    )
    return {letter for letter, _, _ in chosen}


def _chain(
    text: str, chosen: Sequence[_Span], pool: Sequence[_Span], *, left: bool
) -> List[_Span]:
    """References joined to ``chosen`` by "and", "&" or "/" ("A and B are")."""
    linked: List[_Span] = []
    edge = (
        min(start for _, start, _ in chosen)
        if left
        else max(end for _, _, end in chosen)
    )
    extended = True
    while extended:
        extended = False
        for ref in pool:
            if ref in chosen or ref in linked:
                continue
            _, start, end = ref
            if (
                left
                and end <= edge
                and _CHAIN_GAP_RE.fullmatch(text, end, edge)
            ):
                linked.append(ref)
                edge = start
                extended = True
            elif (
                not left
                and start >= edge
                and _CHAIN_GAP_RE.fullmatch(text, edge, start)
            ):
                linked.append(ref)
                edge = end
                extended = True
    return linked


def _join(letters: Iterable[str]) -> str:
    return ", ".join(sorted(letters)) or "(none)"
