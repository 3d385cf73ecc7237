from __future__ import annotations

import pytest

from fixtures import CAPITALS_QUIZ, write_quiz
from quiz_site.site import cli
from quiz_site.site import config as cfg


def test_build_writes_site_into_workspace(quiz_home, quiz_dir, capsys):
    code = cli.build_main([str(quiz_dir)])

    captured = capsys.readouterr()
    assert code == 0
    site_dir = quiz_home / "site"
    assert (site_dir / "capitals.html").is_file()
    assert (site_dir / "index.html").is_file()
    assert "quiz-site build" in captured.out
    assert "Diagnostics by kind" in captured.out
    assert "log file:" in captured.out
    assert (quiz_home / "logs" / "build.log").is_file()


def test_build_flags_override_config(tmp_path, quiz_dir, capsys):
    out_dir = tmp_path / "public"

    code = cli.build_main(
        [str(quiz_dir), "--output-dir", str(out_dir), "--no-index", "--quiet"]
    )

    captured = capsys.readouterr()
    assert code == 0
    assert (out_dir / "mixed.html").is_file()
    assert not (out_dir / "index.html").exists()
    assert "Diagnostics by kind" in captured.out


def test_build_dry_run_writes_nothing(tmp_path, quiz_dir, capsys):
    out_dir = tmp_path / "public"

    code = cli.build_main([str(quiz_dir), "--output-dir", str(out_dir), "--dry-run"])

    captured = capsys.readouterr()
    assert code == 0
    assert not out_dir.exists()
    assert "dry run: no files were written" in captured.out


def test_check_strict_fails_on_diagnostics(quiz_dir, capsys):
    clean = cli.check_main([str(quiz_dir / "capitals.md"), "--strict"])
    lenient = cli.check_main([str(quiz_dir)])
    strict = cli.check_main([str(quiz_dir), "--strict"])

    captured = capsys.readouterr()
    assert (clean, lenient, strict) == (0, 0, 1)
    assert "correct-answer-mismatch" in captured.out


def test_check_returns_error_for_missing_input(tmp_path, capsys):
    code = cli.check_main([str(tmp_path / "missing.md")])

    captured = capsys.readouterr()
    assert code == 1
    assert "failed" in captured.out


def test_fix_rewrites_sources(quiz_dir, capsys):
    code = cli.fix_main([str(quiz_dir)])

    captured = capsys.readouterr()
    assert code == 0
    assert "Rewritten" in captured.out
    legacy = quiz_dir / "nested" / "optimizers_Questions.md"
    assert legacy.read_text(encoding="utf-8").startswith("# Quiz: Optimizers")
    assert (quiz_dir / "capitals.md").read_text(encoding="utf-8") == CAPITALS_QUIZ


def test_missing_config_file_is_a_usage_error(tmp_path, quiz_dir, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.build_main([str(quiz_dir), "--config", str(tmp_path / "nope.toml")])

    captured = capsys.readouterr()
    assert excinfo.value.code == 2
    assert "Config file not found" in captured.err


def test_config_file_extensions_are_used(quiz_home, tmp_path, capsys):
    source_dir = tmp_path / "notes"
    write_quiz(source_dir, "capitals.quiz", CAPITALS_QUIZ)
    config_path = tmp_path / "quiz_site.toml"
    config_path.write_text(
        '[build]\nextensions = ["quiz"]\nwrite_index = false\n',
        encoding="utf-8",
    )

    code = cli.build_main([str(source_dir), "--config", str(config_path)])

    capsys.readouterr()
    assert code == 0
    assert (quiz_home / "site" / "capitals.html").is_file()
    assert not (quiz_home / "site" / "index.html").exists()


def test_config_init_writes_template_and_respects_force(tmp_path, capsys):
    target = tmp_path / "cfg" / "quiz_site.toml"

    first = cli.config_main(["init", "--path", str(target)])
    second = cli.config_main(["init", "--path", str(target)])
    third = cli.config_main(["init", "--path", str(target), "--force"])

    captured = capsys.readouterr()
    assert (first, second, third) == (0, 1, 0)
    assert target.read_text(encoding="utf-8") == cfg.template_text()
    assert "Wrote quiz-site config to" in captured.out
    assert "already exists" in captured.err


def test_config_init_defaults_to_workspace(quiz_home, capsys):
    code = cli.config_main(["init"])

    capsys.readouterr()
    assert code == 0
    assert (quiz_home / "config" / cfg.CONFIG_FILENAME).is_file()
