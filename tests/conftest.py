"""Pytest configuration and fixtures for cscompare tests."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Generator

import pytest

from cscompare.config import CompareConfig
from cscompare.errors import GitVersionUnsupportedError
from cscompare.vcs import GitRepository

GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp(prefix="cscompare_test_"))
    try:
        yield temp_path
    finally:
        if temp_path.exists():
            shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(scope="session")
def require_git() -> str:
    """Skip tests that need a git with ``merge-tree --write-tree``."""
    try:
        return GitRepository(CompareConfig()).validate_git_version()
    except GitVersionUnsupportedError as exc:
        pytest.skip(f"git unavailable or too old: {exc.message}")


class GitRepoHelper:
    """Helper class for git repository operations in tests."""

    def __init__(self, repo_path: Path):
        self.repo_path = repo_path
        self.env = os.environ.copy()
        self.env.update(GIT_IDENTITY)

    def run_git(self, args: list[str]) -> subprocess.CompletedProcess:
        """Run git command in the repository."""
        return subprocess.run(
            ["git"] + args,
            cwd=self.repo_path,
            env=self.env,
            check=True,
            capture_output=True,
            text=True,
        )

    def create_file(self, path: str, content: str) -> None:
        """Create a file with content."""
        file_path = self.repo_path / path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)

    def modify_file(self, path: str, content: str) -> None:
        """Modify an existing file."""
        self.create_file(path, content)

    def delete_file(self, path: str) -> None:
        """Delete a file."""
        file_path = self.repo_path / path
        if file_path.exists():
            file_path.unlink()

    def add_and_commit(self, message: str) -> str:
        """Stage everything and create a commit, return commit SHA."""
        self.run_git(["add", "-A"])
        self.run_git(["commit", "-m", message])
        return self.get_current_sha()

    def get_current_sha(self) -> str:
        """Get current commit SHA."""
        result = self.run_git(["rev-parse", "HEAD"])
        return result.stdout.strip()

    def branch(self, name: str, start: str = "HEAD") -> None:
        """Create and check out a branch."""
        self.run_git(["checkout", "-q", "-b", name, start])

    def checkout(self, name: str) -> None:
        """Check out an existing branch."""
        self.run_git(["checkout", "-q", name])

    def cherry_pick(self, sha: str) -> str:
        """Cherry-pick a commit onto the current branch, return the new SHA."""
        self.run_git(["cherry-pick", sha])
        return self.get_current_sha()

    def rev_parse(self, ref: str) -> str:
        """Resolve a ref to its object id."""
        return self.run_git(["rev-parse", ref]).stdout.strip()


@pytest.fixture
def git_repo(temp_dir: Path) -> Generator[Path, None, None]:
    """Create a temporary git repository with one commit on main."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    helper = GitRepoHelper(repo_path)
    helper.run_git(["init", "-q", "-b", "main"])
    helper.run_git(["config", "user.name", "Test User"])
    helper.run_git(["config", "user.email", "test@example.com"])
    helper.run_git(["config", "commit.gpgSign", "false"])

    helper.create_file("README.md", "# Test Repository\n")
    helper.add_and_commit("Initial commit")

    yield repo_path


@pytest.fixture
def git_helper(git_repo: Path) -> GitRepoHelper:
    """Create a git repository helper."""
    return GitRepoHelper(git_repo)


def numbered_lines(count: int, prefix: str = "line") -> str:
    """Text with one numbered line per row."""
    return "".join(f"{prefix} {i}\n" for i in range(1, count + 1))


@pytest.fixture
def login_ui_repo(git_helper: GitRepoHelper) -> Dict[str, str]:
    """Repository matching the production/login-ui backport example.

    ``production`` forks from ``main`` before an unrelated app change.
    ``login-ui`` adds C1 and C2 on ``main``. ``production-login-ui`` takes
    cherry-picks of C1 and C2 on ``production`` plus its own D1 and D2.
    """
    login = numbered_lines(20)
    git_helper.create_file("login.py", login)
    git_helper.create_file("app.py", "def app():\n    return 1\n")
    git_helper.add_and_commit("Base")

    git_helper.run_git(["branch", "production"])

    git_helper.modify_file("app.py", "def app():\n    return 2\n")
    git_helper.add_and_commit("M1: app change on main only")

    git_helper.branch("login-ui", "main")
    git_helper.modify_file("login.py", login.replace("line 2\n", "line 2 login form\n"))
    c1 = git_helper.add_and_commit("C1: login form")
    git_helper.create_file("templates/login.html", "<form></form>\n")
    c2 = git_helper.add_and_commit("C2: login template")

    git_helper.branch("production-login-ui", "production")
    git_helper.cherry_pick(c1)
    git_helper.cherry_pick(c2)
    git_helper.create_file("banner.txt", "production only\n")
    git_helper.add_and_commit("D1: production banner")
    current = (git_helper.repo_path / "login.py").read_text()
    git_helper.modify_file("login.py", current.replace("line 15\n", "line 15 production tweak\n"))
    git_helper.add_and_commit("D2: production tweak")

    git_helper.checkout("main")
    return {
        "repo": str(git_helper.repo_path),
        "target": "main",
        "base_a": "production",
        "tip_a": "production-login-ui",
        "base_b": "main",
        "tip_b": "login-ui",
    }


@pytest.fixture
def shared_patch_repo(git_helper: GitRepoHelper) -> Dict[str, str]:
    """Two branches off ``main`` sharing patch P, each with one unique patch."""
    git_helper.create_file("shared.txt", numbered_lines(10))
    git_helper.add_and_commit("Base")

    git_helper.branch("side-a", "main")
    git_helper.modify_file("shared.txt", numbered_lines(10).replace("line 5\n", "line 5 P\n"))
    patch_p = git_helper.add_and_commit("P")
    git_helper.create_file("only_a.txt", "unique to a\n")
    git_helper.add_and_commit("U_a")

    git_helper.branch("side-b", "main")
    git_helper.create_file("only_b.txt", "unique to b\n")
    git_helper.add_and_commit("U_b")
    git_helper.cherry_pick(patch_p)

    git_helper.checkout("main")
    return {"repo": str(git_helper.repo_path)}
