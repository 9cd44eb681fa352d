from __future__ import annotations

from pathlib import Path

import pytest

from minici.tools.vcs import GitError, GitRepository


def test_current_branch_and_changed_files(tiny_repo) -> None:
    tiny_repo.commit_files(
        {
            "apex-online/apex-grql/schema.graphql": "type Query { ok: Boolean }\n",
            "ascend-ui/app/index.ts": "export {};\n",
        }
    )
    repo = GitRepository(tiny_repo.root)

    assert repo.current_branch() == "feature/tiny"
    assert sorted(repo.changed_files("main")) == [
        "apex-online/apex-grql/schema.graphql",
        "ascend-ui/app/index.ts",
    ]


def test_changed_files_empty_when_branch_matches_base(tiny_repo) -> None:
    assert GitRepository(tiny_repo.root).changed_files("main") == []


def test_changed_files_unknown_base_raises(tiny_repo) -> None:
    with pytest.raises(GitError):
        GitRepository(tiny_repo.root).changed_files("no-such-branch")


def test_detached_head_has_no_branch(tiny_repo) -> None:
    head = tiny_repo.git("rev-parse", "HEAD").stdout.strip()
    tiny_repo.git("checkout", "--detach", head)

    assert GitRepository(tiny_repo.root).current_branch() is None


def test_discover_walks_up_to_repository(tiny_repo) -> None:
    nested = tiny_repo.root / "deep" / "nested"
    nested.mkdir(parents=True)
    assert GitRepository.discover(nested).root == tiny_repo.root.resolve()


def test_non_repository_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(GitError):
        GitRepository(tmp_path)
