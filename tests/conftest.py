from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class TinyRepo:
    """Fixture payload representing a git repository on a feature branch."""

    root: Path
    config_path: Path
    state_path: Path

    def git(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            ["git", *args],
            cwd=self.root,
            check=True,
            capture_output=True,
            text=True,
        )

    def commit_files(self, files: Mapping[str, str], message: str = "change") -> None:
        for relative, content in files.items():
            target = self.root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        self.git("add", "--all")
        self.git("commit", "-m", message)

    def write_config(self, areas: list[dict[str, Any]], **run: Any) -> None:
        payload: dict[str, Any] = {
            "project": {"repo_root": ".", "base_branch": "main"},
            "paths": {"state_file": "state/mini-ci.json"},
            "areas": areas,
        }
        if run:
            payload["run"] = dict(run)
        with self.config_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)


@pytest.fixture()
def tiny_repo(tmp_path: Path) -> TinyRepo:
    """Create a git repository with a ``main`` base and a checked-out feature branch."""

    repo_root = tmp_path / "tiny-repo"
    repo_root.mkdir()

    def run_git(*cmd: str) -> None:
        subprocess.run(
            ["git", *cmd],
            cwd=repo_root,
            check=True,
            capture_output=True,
            text=True,
        )

    run_git("init")
    run_git("config", "user.email", "ci@example.com")
    run_git("config", "user.name", "Mini CI")
    run_git("config", "commit.gpgsign", "false")

    (repo_root / "README.md").write_text("tiny repo\n", encoding="utf-8")
    (repo_root / ".gitignore").write_text("state/\nmini-ci.yaml\n", encoding="utf-8")
    run_git("add", ".")
    run_git("commit", "-m", "Initial tiny repo state")
    run_git("branch", "-M", "main")
    run_git("checkout", "-b", "feature/tiny")

    return TinyRepo(
        root=repo_root,
        config_path=repo_root / "mini-ci.yaml",
        state_path=repo_root / "state" / "mini-ci.json",
    )
