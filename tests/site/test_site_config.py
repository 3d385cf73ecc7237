from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from quiz_site.site import config as cfg


def _write_config(workspace_root: Path, body: str) -> Path:
    config_dir = workspace_root / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_file = config_dir / cfg.CONFIG_FILENAME
    config_file.write_text(body.strip() + "\n", encoding="utf-8")
    return config_file


def test_load_config_defaults_use_workspace(tmp_path):
    workspace_root = tmp_path / "workspace"

    result = cfg.load_config(env={}, workspace_path=workspace_root)

    assert result.layout.home == workspace_root.resolve()
    assert result.config_path is None
    assert result.config.output_dir == result.layout.path_for("site")
    assert result.config.extensions == ("md", "markdown")
    assert result.config.template is None
    assert result.config.write_index is True
    assert result.config.highlight_style == "default"
    assert result.config.log_level == "INFO"


def test_load_config_reads_default_config_file(tmp_path):
    workspace_root = tmp_path / "ws"
    config_file = _write_config(
        workspace_root,
        """
        [paths]
        output_dir = "public"
        template = "page.html"

        [build]
        extensions = ["MD", ".txt", "md"]
        write_index = false
        highlight_style = "monokai"

        [logging]
        level = "warning"
        """,
    )
    (config_file.parent / "page.html").write_text("{{ title }}", encoding="utf-8")

    result = cfg.load_config(env={}, workspace_path=workspace_root)

    config_dir = config_file.parent.resolve()
    assert result.config_path == config_file
    assert result.config.output_dir == config_dir / "public"
    assert result.config.template == config_dir / "page.html"
    assert result.config.extensions == ("md", "txt")
    assert result.config.write_index is False
    assert result.config.highlight_style == "monokai"
    assert result.config.log_level == "WARNING"


def test_env_overrides_file_and_cli_overrides_env(tmp_path):
    workspace_root = tmp_path / "env-ws"
    config_file = _write_config(
        workspace_root,
        """
        [paths]
        output_dir = "file-out"

        [build]
        extensions = ["md"]

        [logging]
        level = "info"
        """,
    )
    env_map = {
        cfg.CONFIG_ENV: str(config_file),
        f"{cfg.ENV_PREFIX}OUTPUT_DIR": str(tmp_path / "env-out"),
        f"{cfg.ENV_PREFIX}EXTENSIONS": "markdown, txt",
        f"{cfg.ENV_PREFIX}LOG_LEVEL": "error",
    }

    from_env = cfg.load_config(env=env_map, workspace_path=workspace_root)

    assert from_env.config.output_dir == (tmp_path / "env-out").resolve()
    assert from_env.config.extensions == ("markdown", "txt")
    assert from_env.config.log_level == "ERROR"

    overrides = cfg.ConfigOverrides(
        output_dir=tmp_path / "cli-out",
        extensions=["md"],
        write_index=False,
        log_level="debug",
    )
    from_cli = cfg.load_config(
        env=env_map, overrides=overrides, workspace_path=workspace_root
    )

    assert from_cli.config.output_dir == (tmp_path / "cli-out").resolve()
    assert from_cli.config.extensions == ("md",)
    assert from_cli.config.write_index is False
    assert from_cli.config.log_level == "DEBUG"


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(cfg.SiteConfigError, match="not found"):
        cfg.load_config(
            config_path=tmp_path / "nope.toml",
            env={},
            workspace_path=tmp_path / "ws",
        )

    with pytest.raises(cfg.SiteConfigError, match="not found"):
        cfg.load_config(
            env={cfg.CONFIG_ENV: str(tmp_path / "env-nope.toml")},
            workspace_path=tmp_path / "ws",
        )


@pytest.mark.parametrize(
    "body",
    [
        "[unexpected]\nvalue = 1",
        "[build]\nwrite_index = \"yes\"",
        "[build]\nextensions = \"md\"",
        "[build]\nextensions = []",
        "[logging]\nlevel = \"\"",
        "[paths]\noutput_dir = 3",
        "[paths]\ntemplate = \"missing.html\"",
        "[build",
    ],
)
def test_invalid_config_values_raise(tmp_path, body):
    workspace_root = tmp_path / "bad"
    config_file = _write_config(workspace_root, body)

    with pytest.raises(cfg.SiteConfigError):
        cfg.load_config(
            config_path=config_file, env={}, workspace_path=workspace_root
        )


def test_packaged_template_matches_defaults(tmp_path):
    parsed = tomllib.loads(cfg.template_text())

    defaults = cfg.load_config(env={}, workspace_path=tmp_path / "ws").config
    assert parsed["build"]["extensions"] == list(defaults.extensions)
    assert parsed["build"]["write_index"] is defaults.write_index
    assert parsed["build"]["highlight_style"] == defaults.highlight_style
    assert parsed["logging"]["level"] == defaults.log_level
