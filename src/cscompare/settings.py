"""Application-wide settings and environment loading."""

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()
logger.debug("Environment variables loaded from .env if present")


@lru_cache(maxsize=1)
def get_default_repo_path() -> str:
    """Return the repository path used when none is given explicitly."""
    repo_path = os.getenv("CSCOMPARE_REPO")
    if repo_path:
        logger.debug("Default repository configured", extra={"repo": repo_path})
        return repo_path

    logger.debug("Default repository not configured, using current directory")
    return "."
