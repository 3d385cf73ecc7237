from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from fixtures import CAPITALS_QUIZ, LEGACY_QUIZ, MIXED_QUIZ, write_quiz
from quiz_site.core.logging import configure_logger
from quiz_site.quiz.grading import read_correctness_tags
from quiz_site.quiz.model import DiagnosticKind
from quiz_site.site import builder
from quiz_site.site.builder import DocumentStatus, RunMode
from quiz_site.site.config import SiteConfig


def _config(tmp_path: Path, **changes) -> SiteConfig:
    values = {
        "extensions": ("md",),
        "output_dir": tmp_path / "site",
        "template": None,
        "write_index": True,
        "highlight_style": "default",
        "log_level": "INFO",
    }
    values.update(changes)
    return SiteConfig(**values)


@pytest.fixture(name="logger")
def _logger() -> logging.Logger:
    logger = logging.getLogger("quiz_site.tests.builder")
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


def _by_name(summary: builder.BuildSummary) -> dict[str, builder.DocumentResult]:
    return {result.source.name: result for result in summary.results}


def test_run_build_writes_pages_and_index(tmp_path, quiz_dir, logger):
    config = _config(tmp_path)

    summary = builder.run_build([quiz_dir], config=config, logger=logger)

    assert summary.mode is RunMode.BUILD
    assert summary.ok_count == 3
    assert summary.exit_code() == 0
    for name in ("capitals.html", "mixed.html", "optimizers_Questions.html"):
        assert (config.output_dir / name).is_file()

    assert summary.index_path == config.output_dir / builder.INDEX_FILENAME
    index = summary.index_path.read_text(encoding="utf-8")
    assert '<a href="capitals.html">World Capitals</a>' in index
    assert '<a href="optimizers_Questions.html">Optimizers</a>' in index


def test_built_pages_carry_resolved_answers(tmp_path, quiz_dir, logger):
    config = _config(tmp_path)

    summary = builder.run_build([quiz_dir], config=config, logger=logger)

    for result in summary.results:
        html = result.output_path.read_text(encoding="utf-8")
        tags = read_correctness_tags(html)
        for index, question in enumerate(result.document.questions):
            if question.options:
                assert tags[index] == frozenset(
                    question.correct_letters
                )


def test_build_dry_run_and_no_index_write_nothing(tmp_path, quiz_dir, logger):
    dry = builder.run_build(
        [quiz_dir], config=_config(tmp_path), logger=logger, write=False
    )

    assert dry.ok_count == 3
    assert dry.index_path is None
    assert not (tmp_path / "site").exists()

    no_index = builder.run_build(
        [quiz_dir], config=_config(tmp_path, write_index=False), logger=logger
    )

    assert no_index.index_path is None
    assert not (tmp_path / "site" / builder.INDEX_FILENAME).exists()
    assert (tmp_path / "site" / "capitals.html").exists()


def test_malformed_and_missing_inputs_do_not_stop_the_batch(tmp_path, logger):
    root = tmp_path / "in"
    good = write_quiz(root, "capitals.md", CAPITALS_QUIZ)
    notes = write_quiz(root, "notes.md", "# Just notes\n\nNo questions here.\n")
    missing = root / "gone.md"

    summary = builder.run_build(
        [notes, missing, good], config=_config(tmp_path), logger=logger
    )

    statuses = [result.status for result in summary.results]
    assert statuses == [
        DocumentStatus.MALFORMED,
        DocumentStatus.FAILED,
        DocumentStatus.OK,
    ]
    assert "No question sections" in summary.results[0].reason
    assert "Input not found" in summary.results[1].reason
    assert summary.exit_code() == 1
    assert (tmp_path / "site" / "capitals.html").exists()
    assert not (tmp_path / "site" / "notes.html").exists()

    index = summary.index_path.read_text(encoding="utf-8")
    assert "capitals.html" in index
    assert "notes.html" not in index


def test_output_names_never_collide(tmp_path, logger):
    first = write_quiz(tmp_path / "a", "quiz.md", CAPITALS_QUIZ)
    second = write_quiz(tmp_path / "b", "quiz.md", CAPITALS_QUIZ)
    index_source = write_quiz(tmp_path / "c", "index.md", CAPITALS_QUIZ)

    summary = builder.run_build(
        [first, second, index_source, first],
        config=_config(tmp_path),
        logger=logger,
    )

    names = [result.output_path.name for result in summary.results]
    assert names == ["quiz.html", "quiz-2.html", "index-2.html"]


def test_named_file_is_built_whatever_its_extension(tmp_path, logger):
    source = write_quiz(tmp_path / "in", "capitals.txt", CAPITALS_QUIZ)
    write_quiz(tmp_path / "in", "skipped.txt", CAPITALS_QUIZ)

    named = builder.run_build([source], config=_config(tmp_path), logger=logger)
    walked = builder.run_build(
        [tmp_path / "in"], config=_config(tmp_path), logger=logger
    )

    assert named.ok_count == 1
    assert walked.results == ()


def test_run_check_reports_diagnostics_and_strict_exit(
    tmp_path, quiz_dir, logger
):
    summary = builder.run_check([quiz_dir], config=_config(tmp_path), logger=logger)

    results = _by_name(summary)
    assert results["capitals.md"].diagnostics == ()
    assert results["mixed.md"].diagnostics
    assert summary.question_count == 3 + 4 + 2
    by_kind = summary.diagnostics_by_kind()
    assert by_kind[DiagnosticKind.CORRECT_ANSWER_MISMATCH] >= 1
    assert by_kind[DiagnosticKind.LOW_CONFIDENCE] >= 1
    assert summary.exit_code() == 0
    assert summary.exit_code(strict=True) == 1
    assert not (tmp_path / "site").exists()


def test_run_fix_rewrites_only_non_canonical_files(tmp_path, quiz_dir, logger):
    capitals = quiz_dir / "capitals.md"
    mixed = quiz_dir / "mixed.md"
    legacy = quiz_dir / "nested" / "optimizers_Questions.md"

    summary = builder.run_fix([quiz_dir], config=_config(tmp_path), logger=logger)

    results = _by_name(summary)
    assert results["capitals.md"].changed is False
    assert results["mixed.md"].changed is True
    assert results["optimizers_Questions.md"].changed is True
    assert summary.changed_count == 2

    assert capitals.read_text(encoding="utf-8") == CAPITALS_QUIZ
    rewritten_legacy = legacy.read_text(encoding="utf-8")
    assert rewritten_legacy.startswith("# Quiz: Optimizers\n")
    assert "- [ ] A. SGD" in rewritten_legacy
    assert "**Correct Answers:** B" in rewritten_legacy
    assert "**Correct Answers:** A, C" in mixed.read_text(encoding="utf-8")


def test_fixed_files_keep_their_answers(tmp_path, quiz_dir, logger):
    config = _config(tmp_path)
    before = builder.run_check([quiz_dir], config=config, logger=logger)

    builder.run_fix([quiz_dir], config=config, logger=logger)
    after = builder.run_check([quiz_dir], config=config, logger=logger)

    for old, new in zip(before.results, after.results):
        assert [q.correct_letters for q in new.document.questions] == [
            q.correct_letters for q in old.document.questions
        ]


def test_fix_keeps_notes_between_options_and_answer(tmp_path, logger):
    source = write_quiz(
        tmp_path / "in",
        "hinted.md",
        "### Question 1 (Multiple Choice)\nPick one\n"
        "- [ ] A. alpha\n- [ ] B. beta\n\n"
        "Hint: think about lecture 2.\n\n"
        "**Correct Answer:** B\n",
    )

    summary = builder.run_fix([source], config=_config(tmp_path), logger=logger)

    fixed = source.read_text(encoding="utf-8")
    assert summary.changed_count == 1
    assert "Hint: think about lecture 2." in fixed
    assert "**Correct Answers:** B" in fixed
    assert fixed.index("Hint") < fixed.index("<details>")


def test_fix_dry_run_leaves_sources_alone(tmp_path, quiz_dir, logger):
    summary = builder.run_fix(
        [quiz_dir / "mixed.md"],
        config=_config(tmp_path),
        logger=logger,
        write=False,
    )

    assert summary.changed_count == 1
    assert (quiz_dir / "mixed.md").read_text(encoding="utf-8") == MIXED_QUIZ


def test_diagnostics_are_logged_as_json(tmp_path, logger):
    source = write_quiz(tmp_path / "in", "mixed.md", MIXED_QUIZ)
    json_logger, log_path = configure_logger(
        "quiz_site.tests.json", log_dir=tmp_path / "logs"
    )

    builder.run_check([source], config=_config(tmp_path), logger=json_logger)
    for handler in json_logger.handlers:
        handler.flush()

    records = [
        json.loads(line)
        for line in log_path.read_text(encoding="utf-8").splitlines()
    ]
    diagnostics = [r for r in records if r["message"] == "Question diagnostic"]
    assert diagnostics
    assert all(r["level"] == "WARNING" for r in diagnostics)
    assert {r["extra"]["kind"] for r in diagnostics} >= {
        DiagnosticKind.CORRECT_ANSWER_MISMATCH.value
    }
    assert records[-1]["message"] == "Completed quiz-site check run"


def test_load_document_titles_from_file_name(tmp_path):
    source = write_quiz(tmp_path, "13.2Combined.md", LEGACY_QUIZ)

    document = builder.load_document(source)

    assert document.title == "13.2"
    assert document.source == source
