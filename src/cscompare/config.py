"""Configuration management for cscompare."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

OUTPUT_FORMATS = ("patch", "json")


@dataclass(frozen=True)
class CompareConfig:
    """Configuration for synthetic tree generation and diffing."""

    # Repository the refs live in
    repo_path: str = "."

    # Rename detection
    find_renames_threshold: int = 50  # percentage, git's own default

    context_lines: int = 3

    # Output options
    output_format: str = "patch"
    json_output_path: Optional[str] = None

    # Per git invocation
    timeout_seconds: int = 300

    # Git environment settings
    diff_algorithm: str = "myers"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.repo_path:
            raise ValueError("repo_path cannot be empty")
        if not (0 <= self.find_renames_threshold <= 100):
            raise ValueError("find_renames_threshold must be between 0 and 100")
        if self.context_lines < 0:
            raise ValueError("context_lines cannot be negative")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"output_format must be one of: {', '.join(OUTPUT_FORMATS)}")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @property
    def git_env(self) -> Dict[str, str]:
        """Get Git environment variables for deterministic output."""
        env = os.environ.copy()

        # Use platform-appropriate null device
        null_device = "NUL" if os.name == "nt" else "/dev/null"

        env.update(
            {
                "LC_ALL": "C",
                "GIT_CONFIG_GLOBAL": null_device,
                "GIT_CONFIG_SYSTEM": null_device,
                "GIT_TERMINAL_PROMPT": "0",
                "GIT_PAGER": "cat",
                "GIT_ASKPASS": "echo",
                "SSH_ASKPASS": "echo",
            }
        )
        # Repository selection comes from repo_path only
        for key in ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
            env.pop(key, None)
        return env

    def to_provenance_dict(self) -> Dict[str, Any]:
        """Convert config to provenance dictionary for output."""
        return {
            "repo_path": self.repo_path,
            "context_lines": self.context_lines,
            "rename_detection": {
                "enabled": True,
                "threshold_pct": self.find_renames_threshold,
            },
            "diff_algorithm": self.diff_algorithm,
            "env_locks": {
                "LC_ALL": "C",
                "color": "off",
                "core.autocrlf": "false",
                "core.quotePath": "false",
            },
        }
