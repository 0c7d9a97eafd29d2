from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from kickoff.tools.vcs import CheckpointRecorder, GitError, GitRepository


def _prepare_repo(repo_root: Path) -> GitRepository:
    subprocess.run(["git", "init"], cwd=repo_root, check=True, capture_output=True)
    repo = GitRepository(repo_root)
    repo.git("config", "user.email", "kickoff@example.com")
    repo.git("config", "user.name", "Kickoff")
    return repo


def test_disabled_recorder_is_a_no_op(tmp_path: Path) -> None:
    (tmp_path / "Gemfile").write_text("source 'https://rubygems.org'\n", encoding="utf-8")
    recorder = CheckpointRecorder()

    assert recorder.enabled is False
    assert recorder.checkpoint("Add custom gems") is None
    assert recorder.history == []
    assert not (tmp_path / ".git").exists()


def test_checkpoint_commits_the_whole_tree(tmp_path: Path) -> None:
    repo = _prepare_repo(tmp_path)
    (tmp_path / "Procfile").write_text("web: bundle exec puma\n", encoding="utf-8")
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "database.yml").write_text("default: &default\n", encoding="utf-8")
    recorder = CheckpointRecorder(repo)

    checkpoint = recorder.checkpoint("Setup config files")

    assert checkpoint is not None
    assert checkpoint.sha == repo.head()
    assert {path.as_posix() for path in checkpoint.paths} == {"Procfile", "config"}
    assert repo.log_messages() == ["Setup config files"]
    assert repo.working_tree_changes() == []
    assert recorder.history == [checkpoint]


def test_checkpoint_with_clean_tree_returns_none(tmp_path: Path) -> None:
    repo = _prepare_repo(tmp_path)
    (tmp_path / "README.md").write_text("# Demo\n", encoding="utf-8")
    recorder = CheckpointRecorder(repo)
    recorder.checkpoint("Initial commit")

    assert recorder.checkpoint("Create and migrate database") is None
    assert repo.log_messages() == ["Initial commit"]
    assert len(recorder.history) == 1


def test_clean_tree_under_translated_locale(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    repo = _prepare_repo(tmp_path)
    (tmp_path / "tmp" / "pids").mkdir(parents=True)
    (tmp_path / "tmp" / "pids" / ".keep").write_text("", encoding="utf-8")
    recorder = CheckpointRecorder(repo)
    recorder.checkpoint("Initial commit")
    monkeypatch.setenv("LANGUAGE", "de")
    monkeypatch.setenv("LC_ALL", "de_DE.UTF-8")
    monkeypatch.setenv("LANG", "de_DE.UTF-8")

    assert recorder.checkpoint("Add tmp/pids") is None
    assert repo.commit_all("Add tmp/pids") is None
    assert repo.log_messages() == ["Initial commit"]


def test_checkpoint_bypasses_commit_hooks(tmp_path: Path) -> None:
    repo = _prepare_repo(tmp_path)
    hook = tmp_path / ".git" / "hooks" / "pre-commit"
    hook.parent.mkdir(parents=True, exist_ok=True)
    hook.write_text("#!/bin/sh\nexit 1\n", encoding="utf-8")
    hook.chmod(0o755)
    (tmp_path / "package.json").write_text("{}\n", encoding="utf-8")

    checkpoint = CheckpointRecorder(repo).checkpoint("Install Husky")

    assert checkpoint is not None
    assert repo.log_messages() == ["Install Husky"]


def test_recorder_can_only_be_enabled_once(tmp_path: Path) -> None:
    repo = _prepare_repo(tmp_path)
    recorder = CheckpointRecorder()
    recorder.enable(repo)

    with pytest.raises(RuntimeError):
        recorder.enable(repo)


def test_init_is_non_destructive(tmp_path: Path) -> None:
    fresh = GitRepository.init(tmp_path / "fresh")
    assert (fresh.root / ".git").is_dir()
    assert fresh.git("config", "--get", "user.email").stdout.strip()

    existing_root = tmp_path / "existing"
    existing_root.mkdir()
    existing = _prepare_repo(existing_root)
    (existing_root / "app.json").write_text("{}\n", encoding="utf-8")
    existing.commit_all("Initial commit")

    reopened = GitRepository.init(existing_root)
    assert reopened.log_messages() == ["Initial commit"]


def test_repository_errors(tmp_path: Path) -> None:
    with pytest.raises(GitError):
        GitRepository(tmp_path)

    repo = _prepare_repo(tmp_path)
    with pytest.raises(GitError) as excinfo:
        repo.git("checkout", "no-such-branch")
    assert excinfo.value.returncode != 0
