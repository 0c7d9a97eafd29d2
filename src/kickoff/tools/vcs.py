"""Minimal git helpers
The helpers below provide just enough structure to stage the working tree,
list pending changes, and record a commit after every pipeline step.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Set

from .commands import ExternalCommandError
from .mutator import emit_action

LOGGER = logging.getLogger(__name__)

# commit_all matches English git messages.
_GIT_ENV_OVERRIDES = {"LC_ALL": "C", "LANGUAGE": ""}


class GitError(ExternalCommandError):
    """Raised when a git command fails or the repository cannot be used."""


@dataclass(slots=True)
class Checkpoint:
    """Commit recorded after a pipeline step.

    ``paths`` is whatever was pending when the checkpoint was taken: the whole
    working tree is staged, never a curated list.
    """

    message: str
    sha: str
    paths: tuple[Path, ...] = ()


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    @classmethod
    def init(cls, root: Path | str) -> "GitRepository":
        """Open the repository at ``root``, running ``git init`` when there is none.

        An existing ``.git`` directory is never touched. Fresh repositories get
        a fallback identity so the first commit does not fail on hosts without
        a global git configuration.
        """

        path = Path(root).resolve()
        if (path / ".git").exists():
            return cls(path)

        path.mkdir(parents=True, exist_ok=True)
        _run(["init"], cwd=path)

        def _ensure_config(key: str, value: str) -> None:
            probe = _run(["config", "--get", key], cwd=path, check=False)
            if probe.returncode != 0 or not probe.stdout.strip():
                _run(["config", key, value], cwd=path)

        _ensure_config("user.email", "kickoff@example.com")
        _ensure_config("user.name", "Kickoff")
        return cls(path)

    # ------------------------------------------------------------------ git IO
    def git(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Execute ``git`` with ``args`` relative to the repository root."""

        return _run(list(args), cwd=self.root, check=check)

    # ------------------------------------------------------------- repo status
    def _status_entries(self) -> List[tuple[str, Path]]:
        result = self.git("status", "--porcelain")
        entries: List[tuple[str, Path]] = []
        for line in result.stdout.splitlines():
            if not line:
                continue
            status = line[:2]
            raw_path = line[3:]
            if status[0] in {"R", "C"} and " -> " in raw_path:
                raw_path = raw_path.split(" -> ", 1)[1]
            status_clean = status.strip() or status
            entries.append((status_clean, Path(raw_path.strip().strip('"'))))
        return entries

    def working_tree_changes(self, *, include_untracked: bool = True) -> List[Path]:
        """Return the set of paths with pending modifications."""

        paths: Set[Path] = set()
        for status, path in self._status_entries():
            if status == "??" and not include_untracked:
                continue
            paths.add(path)
        return sorted(paths, key=lambda item: item.as_posix())

    def head(self) -> str | None:
        result = self.git("rev-parse", "--verify", "HEAD", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def log_messages(self, limit: int | None = None) -> List[str]:
        """Return commit subjects, newest first."""

        if self.head() is None:
            return []
        args = ["log", "--format=%s"]
        if limit is not None:
            args.append(f"-n{limit}")
        return [line for line in self.git(*args).stdout.splitlines() if line]

    # ---------------------------------------------------------------- commits
    def commit_all(self, message: str, *, skip_hooks: bool = False) -> str | None:
        """Add all changes to the index and create a commit.

        Returns the new commit SHA, or ``None`` when there was nothing to commit.
        """

        self.git("add", ".")

        commit_args: List[str] = ["commit", "-m", message]
        if skip_hooks:
            commit_args.append("--no-verify")

        commit = self.git(*commit_args, check=False)
        if commit.returncode != 0:
            output = commit.stderr.strip() or commit.stdout.strip() or ""
            if "nothing to commit" in output.lower() or "nothing added to commit" in output.lower():
                return None
            raise GitError(
                f"git commit failed: {output}",
                command=["git", *commit_args],
                returncode=commit.returncode,
                stdout=commit.stdout,
                stderr=commit.stderr,
            )

        return self.head()


def _run(args: Sequence[str], *, cwd: Path, check: bool = True) -> subprocess.CompletedProcess[str]:
    command = ["git", *args]
    try:
        process = subprocess.run(
            command,
            cwd=cwd,
            env={**os.environ, **_GIT_ENV_OVERRIDES},
            capture_output=True,
            text=False,
            check=False,
        )
    except FileNotFoundError as error:
        raise GitError("Executable not available: git", command=command) from error
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    result = subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
    if check and result.returncode != 0:
        message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
        raise GitError(
            f"git {' '.join(args)} failed: {message}",
            command=command,
            returncode=result.returncode,
            stdout=stdout,
            stderr=stderr,
        )
    return result


@dataclass(slots=True)
class CheckpointRecorder:
    """Commit the whole working tree after each pipeline step.

    Without a repository every call is a no-op, so steps can checkpoint
    unconditionally. The repository is attached at most once per run.
    """

    repo: GitRepository | None = None
    history: List[Checkpoint] = field(default_factory=list)

    @property
    def enabled(self) -> bool:
        return self.repo is not None

    def enable(self, repo: GitRepository) -> None:
        if self.repo is not None:
            raise RuntimeError("Version control was already enabled for this run.")
        self.repo = repo

    def checkpoint(self, message: str) -> Checkpoint | None:
        if self.repo is None:
            return None

        pending = tuple(self.repo.working_tree_changes())
        if not pending:
            LOGGER.debug("Nothing to commit for checkpoint %r", message)
            return None
        # Hooks installed later in the pipeline must not run on our own commits.
        sha = self.repo.commit_all(message, skip_hooks=True)
        if sha is None:
            LOGGER.debug("Nothing to commit for checkpoint %r", message)
            return None

        record = Checkpoint(message=message, sha=sha, paths=pending)
        self.history.append(record)
        emit_action("commit", message=message, sha=sha[:7], files=len(pending))
        return record


__all__ = ["Checkpoint", "CheckpointRecorder", "GitError", "GitRepository"]
