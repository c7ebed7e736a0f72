"""Meta endpoints for cscompare API."""

import logging
from typing import Optional, Tuple

from fastapi import APIRouter

from .. import __version__
from ...config import CompareConfig
from ...errors import GitVersionUnsupportedError
from ...vcs import MIN_GIT_VERSION, GitRepository
from ..models import HealthResponse, VersionResponse

router = APIRouter(tags=["meta"])

logger = logging.getLogger(__name__)


def _probe_git() -> Tuple[Optional[str], Optional[str]]:
    """Return the detected git version and the merge strategy it allows.

    The strategy is ``None`` when git is missing or too old to synthesize
    trees at all.
    """
    repo = GitRepository(CompareConfig())
    try:
        version = repo.validate_git_version()
    except GitVersionUnsupportedError as exc:
        detected = exc.details.get("detected_version")
        if detected in ("unavailable", "unknown"):
            detected = None
        return detected, None

    if repo.supports_merge_base_option():
        return version, "merge-base-option"
    return version, "surrogate-commit"


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Report whether this host can run comparisons."""
    git_version, merge_strategy = _probe_git()
    logger.info(
        "Health check invoked",
        extra={"git_version": git_version, "merge_strategy": merge_strategy},
    )
    return HealthResponse(
        status="healthy" if merge_strategy else "degraded",
        version=__version__,
        git_available=git_version is not None,
        git_version=git_version,
        merge_strategy=merge_strategy,
    )


@router.get("/version", response_model=VersionResponse)
def version_info() -> VersionResponse:
    git_version, _ = _probe_git()
    return VersionResponse(
        version=__version__,
        git_version=git_version,
        minimum_git_version=".".join(str(part) for part in MIN_GIT_VERSION),
    )
