"""Render normalized quiz documents into self-contained interactive pages.

Design:
- Markdown (prompts, option text, explanations) goes through markdown-it with
  raw HTML enabled and Pygments highlighting for fenced code.
- Page and question markup live in Jinja2 templates under ``resources/``; a
  caller may swap the page template to add navigation chrome.
- Correctness is decided here, once, and written to each control as
  ``data-correct``. The browser grader only compares checked state to tags.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, Template
from markdown_it import MarkdownIt
from markupsafe import Markup
from pygments import highlight as pygments_highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .model import Question, QuestionType, QuizDocument
from .normalizer import strip_answer_lines

__all__ = [
    "IndexEntry",
    "build_markdown_it",
    "highlight_css",
    "render_index",
    "render_page",
    "render_question",
]

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"
PAGE_TEMPLATE = "quiz_page.html"
QUESTION_TEMPLATE = "question.html"
INDEX_TEMPLATE = "index.html"
DEFAULT_HIGHLIGHT_STYLE = "default"


@dataclass(frozen=True)
class IndexEntry:
    """One quiz listed on the generated index page."""

    title: str
    href: str
    question_count: int
    diagnostic_count: int = 0


def build_markdown_it(style: str = DEFAULT_HIGHLIGHT_STYLE) -> MarkdownIt:
    formatter = HtmlFormatter(style=style, nowrap=True)

    def _highlight(code: str, lang: str, _attrs: Any) -> str:
        if not lang:
            return ""
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            return ""
        return pygments_highlight(code, lexer, formatter)

    return MarkdownIt(
        "commonmark",
        options_update={"html": True, "highlight": _highlight},
    )


def highlight_css(style: str = DEFAULT_HIGHLIGHT_STYLE) -> str:
    return HtmlFormatter(style=style).get_style_defs(".question pre")


def render_question(
    question: Question,
    *,
    index: int,
    md: Optional[MarkdownIt] = None,
) -> Markup:
    """Render one question block.

    ``index`` is the zero-based position on the page and keeps control ids
    unique even when question numbers repeat.
    """
    md = md or build_markdown_it()
    template = _environment().get_template(QUESTION_TEMPLATE)
    return Markup(
        template.render(question=_question_view(question, index=index, md=md))
    )


def render_page(
    document: QuizDocument,
    *,
    template_path: Optional[Path] = None,
    context: Optional[Mapping[str, Any]] = None,
    highlight_style: str = DEFAULT_HIGHLIGHT_STYLE,
) -> str:
    """Render ``document`` as a single HTML page.

    The grader script and stylesheet are inlined so the page works from disk.
    Extra ``context`` values are passed to the page template untouched.
    """
    md = build_markdown_it(highlight_style)
    blocks = [
        render_question(question, index=idx, md=md)
        for idx, question in enumerate(document.questions)
    ]
    template = _page_template(template_path)
    values: Dict[str, Any] = dict(context or {})
    values.update(
        title=document.title,
        questions=blocks,
        question_count=len(blocks),
        styles=Markup(_resource_text("quiz.css") + highlight_css(highlight_style)),
        script=Markup(_resource_text("quiz.js")),
    )
    return template.render(**values)


def render_index(
    entries: Sequence[IndexEntry], *, title: str = "All Quizzes"
) -> str:
    template = _environment().get_template(INDEX_TEMPLATE)
    return template.render(
        title=title,
        entries=list(entries),
        styles=Markup(_resource_text("quiz.css")),
    )


def _question_view(
    question: Question, *, index: int, md: MarkdownIt
) -> Dict[str, Any]:
    input_type = "radio" if question.type.single_answer else "checkbox"
    correct = set(question.correct_letters)
    options: List[Dict[str, Any]] = [
        {
            "letter": option.letter,
            "id": f"q{index}-{option.letter.lower()}",
            "html": Markup(md.renderInline(option.text)),
            "correct": option.letter in correct,
        }
        for option in question.options
    ]
    explanation = strip_answer_lines(question.explanation)
    return {
        "index": index,
        "number": question.number,
        "title": question.title,
        "type": question.type.value,
        "input_type": input_type,
        "multi": question.type is QuestionType.MULTI_SELECT,
        "name": f"q{index}",
        "prompt_html": Markup(md.render(question.prompt)),
        "options": options,
        "trailer_html": (
            Markup(md.render(question.trailer)) if question.trailer else ""
        ),
        "explanation_html": Markup(md.render(explanation)),
        "low_confidence": question.answer is not None
        and not question.answer.confident,
    }


def _environment(search_dir: Path = RESOURCES_DIR) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(search_dir)), autoescape=True
    )


def _page_template(template_path: Optional[Path]) -> Template:
    if template_path:
        path = Path(template_path).expanduser().resolve()
        return _environment(path.parent).get_template(path.name)
    return _environment().get_template(PAGE_TEMPLATE)


def _resource_text(name: str) -> str:
    return (RESOURCES_DIR / name).read_text(encoding="utf-8")
