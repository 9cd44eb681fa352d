from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from minici.config import DEFAULT_CONFIRM_THRESHOLD, find_config, load_config
from minici.errors import ConfigurationError
from minici.planning.generator import DEFAULT_AREAS
from minici.tools.vcs import GitError


def test_missing_default_config_uses_defaults(tiny_repo, monkeypatch: pytest.MonkeyPatch) -> None:
    subdir = tiny_repo.root / "areaB" / "nested"
    subdir.mkdir(parents=True)
    monkeypatch.chdir(subdir)

    config = load_config()

    assert config.project.base_branch == "main"
    assert config.run.confirm_threshold == DEFAULT_CONFIRM_THRESHOLD
    assert config.area_rules == DEFAULT_AREAS
    assert config.repo_root == tiny_repo.root.resolve()
    assert config.state_file == tiny_repo.root.resolve() / ".mini-ci" / "state.json"


def test_config_is_found_from_a_subdirectory(tiny_repo, monkeypatch: pytest.MonkeyPatch) -> None:
    tiny_repo.config_path.write_text("run:\n  confirm_threshold: 7\n", encoding="utf-8")
    subdir = tiny_repo.root / "areaA"
    subdir.mkdir()
    monkeypatch.chdir(subdir)

    assert find_config() == tiny_repo.config_path.resolve()
    config = load_config()

    assert config.run.confirm_threshold == 7
    assert config.repo_root == tiny_repo.root.resolve()
    assert config.state_file == tiny_repo.root.resolve() / ".mini-ci" / "state.json"


def test_config_search_stops_at_repository_root(tiny_repo, monkeypatch: pytest.MonkeyPatch) -> None:
    (tiny_repo.root.parent / "mini-ci.yaml").write_text("surprise: true\n", encoding="utf-8")
    monkeypatch.chdir(tiny_repo.root)

    assert find_config() is None
    assert load_config().repo_root == tiny_repo.root.resolve()


def test_default_repo_root_outside_git_raises(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = load_config(tmp_path / "mini-ci.yaml")

    with pytest.raises(GitError):
        _ = config.repo_root


def test_missing_required_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "absent.yaml", required=True)


def test_config_paths_resolve_against_config_directory(tmp_path: Path) -> None:
    config_path = tmp_path / "ci" / "mini-ci.yaml"
    config_path.parent.mkdir()
    config_path.write_text(
        textwrap.dedent(
            """
            project:
              repo_root: ..
              base_branch: develop
            paths:
              state_file: data/state.json
            run:
              confirm_threshold: 5
            areas:
              - name: web
                prefix: web/
                schema_commands: ["gen-types", "apply-types"]
                verify_commands: ["tsc"]
            """
        ).lstrip(),
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.repo_root == tmp_path.resolve()
    assert config.state_file == (tmp_path / "ci" / "data" / "state.json").resolve()
    assert config.project.base_branch == "develop"
    assert config.run.confirm_threshold == 5
    (rule,) = config.area_rules
    assert rule.prefix == "web/"
    assert rule.schema_commands == ("gen-types", "apply-types")
    assert rule.verify_commands == ("tsc",)


@pytest.mark.parametrize(
    "content",
    [
        "project: [unterminated\n",
        "- just\n- a list\n",
        "run:\n  confirm_threshold: -1\n",
        "surprise: true\n",
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str) -> None:
    config_path = tmp_path / "mini-ci.yaml"
    config_path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(config_path)
