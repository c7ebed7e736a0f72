"""Version control system operations for cscompare."""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import CompareConfig
from .errors import (
    BackendError,
    GitTimeoutError,
    GitVersionUnsupportedError,
    MergeConflictError,
    UnresolvableRefError,
)

logger = logging.getLogger(__name__)

# merge-tree --write-tree
MIN_GIT_VERSION = (2, 38)
# merge-tree --merge-base
MERGE_BASE_OPTION_VERSION = (2, 40)

_OBJECT_ID_PATTERN = re.compile(r"^(?:[0-9a-f]{40}|[0-9a-f]{64})$")

_UNRESOLVABLE_REF_PATTERN = re.compile(
    r"not a valid object name|unknown revision|bad revision|ambiguous argument"
    r"|not something we can merge|could not parse|could not lookup"
    r"|invalid object name|not a valid commit|not a tree object"
    r"|not a valid '\w+' object",
    re.IGNORECASE,
)

_SURROGATE_IDENTITY = {
    "GIT_AUTHOR_NAME": "cscompare",
    "GIT_AUTHOR_EMAIL": "cscompare@localhost",
    "GIT_AUTHOR_DATE": "946684800 +0000",
    "GIT_COMMITTER_NAME": "cscompare",
    "GIT_COMMITTER_EMAIL": "cscompare@localhost",
    "GIT_COMMITTER_DATE": "946684800 +0000",
}


@dataclass(frozen=True)
class TreeDiff:
    """Patch produced by diffing two tree objects."""

    tree_a: str
    tree_b: str
    patch: bytes
    returncode: int

    @property
    def text(self) -> str:
        return self.patch.decode("utf-8", errors="replace")


def parse_git_version(version_line: str) -> Tuple[int, ...]:
    """Extract the numeric version from ``git --version`` output."""
    match = re.search(r"git version (\d+\.\d+(?:\.\d+)?)", version_line)
    if not match:
        raise GitVersionUnsupportedError("unknown", _format_version(MIN_GIT_VERSION))
    return tuple(int(x) for x in match.group(1).split("."))


def parse_merge_tree_output(output: str) -> Tuple[str, List[str], str]:
    """Split ``merge-tree --write-tree --name-only`` output.

    Returns the tree id, the conflicted paths and the informational
    messages. The paths section and the messages section are separated
    by a blank line and are only present when the merge has conflicts.
    """
    lines = output.split("\n")
    tree_id = lines[0].strip()

    conflicted: List[str] = []
    index = 1
    while index < len(lines) and lines[index] != "":
        conflicted.append(lines[index])
        index += 1

    messages = "\n".join(lines[index + 1:]).strip("\n")
    if messages:
        messages += "\n"
    return tree_id, conflicted, messages


def _format_version(version: Tuple[int, ...]) -> str:
    return ".".join(str(part) for part in version)


def _peel_commit(ref: str) -> str:
    # Annotated tags name tag objects; merge and commit-tree need the commit
    return f"{ref}^{{commit}}"


def _refs_named_in(stderr: str, refs: List[str]) -> List[str]:
    """Refs that git mentions in ``stderr``, in argument order, once each."""
    named: List[str] = []
    for ref in refs:
        if ref in named:
            continue
        if re.search(rf"(?<![\w./-]){re.escape(ref)}(?![\w/-])", stderr):
            named.append(ref)
    return named


class GitRepository:
    """Git repository operations backing a changeset comparison."""

    def __init__(self, config: CompareConfig):
        """Initialize with configuration."""
        self.config = config
        self.workdir = Path(config.repo_path)
        self._git_version: Optional[Tuple[int, ...]] = None

    def _run_git(
        self,
        args: List[str],
        text: bool = True,
        env_overrides: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Run git command with proper environment and error handling."""
        # Enforce deterministic git behavior across platforms
        cmd = [
            "git",
            "-c",
            "core.autocrlf=false",
            "-c",
            "color.ui=false",
            "-c",
            "core.quotePath=false",
        ] + args

        env = self.config.git_env
        if env_overrides:
            env.update(env_overrides)

        logger.debug("Running git", extra={"git_args": args, "repo": str(self.workdir)})
        try:
            if text:
                return subprocess.run(
                    cmd,
                    cwd=self.workdir,
                    env=env,
                    timeout=self.config.timeout_seconds,
                    check=False,
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                )
            return subprocess.run(
                cmd,
                cwd=self.workdir,
                env=env,
                timeout=self.config.timeout_seconds,
                check=False,
                capture_output=True,
            )
        except subprocess.TimeoutExpired as e:
            raise GitTimeoutError(f"git {args[0]}", self.config.timeout_seconds) from e

    def validate_git_version(self) -> str:
        """Validate Git version meets minimum requirements."""
        if self._git_version:
            return _format_version(self._git_version)

        required = _format_version(MIN_GIT_VERSION)
        try:
            result = subprocess.run(
                ["git", "--version"],
                capture_output=True,
                text=True,
                check=True,
                timeout=10,
            )
        except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
            raise GitVersionUnsupportedError("unavailable", required) from e

        version = parse_git_version(result.stdout.strip())
        if version[:2] < MIN_GIT_VERSION:
            raise GitVersionUnsupportedError(_format_version(version), required)

        self._git_version = version
        logger.debug("Detected git version", extra={"git_version": _format_version(version)})
        return _format_version(version)

    def supports_merge_base_option(self) -> bool:
        """Whether merge-tree accepts an explicit --merge-base."""
        self.validate_git_version()
        return self._git_version[:2] >= MERGE_BASE_OPTION_VERSION

    def synthesize(self, merge_base: str, ours: str, theirs: str) -> str:
        """Three-way merge ``theirs`` onto ``ours`` using ``merge_base``.

        Returns the id of the resulting tree object. Nothing is checked out
        and no ref is updated.
        """
        if self.supports_merge_base_option():
            args = [
                "merge-tree",
                "--write-tree",
                "--name-only",
                f"--merge-base={_peel_commit(merge_base)}",
                _peel_commit(ours),
                _peel_commit(theirs),
            ]
        else:
            surrogate = self._write_surrogate_commit(merge_base, ours)
            args = [
                "merge-tree", "--write-tree", "--name-only", surrogate, _peel_commit(theirs),
            ]

        result = self._run_git(args)
        if result.returncode == 1:
            _, conflicted, messages = parse_merge_tree_output(result.stdout)
            logger.info(
                "Merge produced conflicts",
                extra={"merge_base": merge_base, "ours": ours, "theirs": theirs,
                       "conflicts": len(conflicted)},
            )
            raise MergeConflictError(
                result.returncode, conflicted, messages, merge_base, ours, theirs
            )
        if result.returncode != 0:
            raise self._backend_error("merge-tree", result, [merge_base, ours, theirs])

        tree_id, _, _ = parse_merge_tree_output(result.stdout)
        if not _OBJECT_ID_PATTERN.match(tree_id):
            raise BackendError(
                "merge-tree",
                result.returncode,
                f"unexpected merge-tree output: {tree_id!r}\n",
            )

        logger.debug(
            "Synthesized tree",
            extra={"merge_base": merge_base, "ours": ours, "theirs": theirs, "tree": tree_id},
        )
        return tree_id

    def _write_surrogate_commit(self, merge_base: str, ours: str) -> str:
        """Write a commit with the tree of ``ours`` and ``merge_base`` as parent.

        Merging ``theirs`` into this commit makes ``merge_base`` the computed
        merge base whenever it is an ancestor of ``theirs``.
        """
        result = self._run_git(
            [
                "-c",
                "commit.gpgSign=false",
                "commit-tree",
                f"{ours}^{{tree}}",
                "-p",
                _peel_commit(merge_base),
                "-m",
                "cscompare surrogate",
            ],
            env_overrides=_SURROGATE_IDENTITY,
        )
        if result.returncode != 0:
            raise self._backend_error("commit-tree", result, [ours, merge_base])
        return result.stdout.strip()

    def diff(self, tree_a: str, tree_b: str) -> TreeDiff:
        """Diff two trees as whole snapshots with rename detection."""
        diff_args = [
            "diff",
            f"--find-renames={self.config.find_renames_threshold}%",
            f"--unified={self.config.context_lines}",
            f"--diff-algorithm={self.config.diff_algorithm}",
            "--no-color",
            "--no-ext-diff",
            "--no-textconv",
            tree_a,
            tree_b,
            "--",
        ]

        result = self._run_git(diff_args, text=False)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace")
            raise self._backend_error(
                "diff",
                subprocess.CompletedProcess(result.args, result.returncode, "", stderr),
                [tree_a, tree_b],
            )

        logger.debug(
            "Diffed trees",
            extra={"tree_a": tree_a, "tree_b": tree_b, "bytes": len(result.stdout)},
        )
        return TreeDiff(
            tree_a=tree_a,
            tree_b=tree_b,
            patch=result.stdout,
            returncode=result.returncode,
        )

    def _backend_error(
        self, operation: str, result: subprocess.CompletedProcess, refs: List[str]
    ) -> BackendError:
        """Wrap a failed git call, keeping its stderr and status untouched."""
        stderr = result.stderr or ""
        logger.info(
            "git call failed",
            extra={"operation": operation, "returncode": result.returncode},
        )
        if _UNRESOLVABLE_REF_PATTERN.search(stderr):
            named = _refs_named_in(stderr, refs)
            return UnresolvableRefError(operation, result.returncode, stderr, named or refs)
        return BackendError(operation, result.returncode, stderr)
