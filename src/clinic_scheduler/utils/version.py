"""Version information of the running server."""

import re
from functools import lru_cache
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as distribution_version

from loguru import logger
from pydantic import BaseModel

DISTRIBUTION_NAME = "clinic-scheduler"


class VersionInfo(BaseModel):
    """Version information model."""

    full_version: str
    version: str
    post_count: str | None = None
    git_commit: str | None = None
    is_dirty: bool = False


@lru_cache
def get_version() -> VersionInfo:
    """Get the installed distribution version, with a fallback for source checkouts."""
    try:
        full_version = distribution_version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        logger.warning("Distribution {} is not installed, using default version", DISTRIBUTION_NAME)
        full_version = "0.1.0-dev"

    base_version, post_count, git_commit, is_dirty = parse_version(full_version)
    return VersionInfo(
        version=base_version,
        full_version=full_version,
        post_count=post_count,
        git_commit=git_commit,
        is_dirty=is_dirty,
    )


def parse_version(version: str) -> tuple[str, str | None, str | None, bool]:
    """Split a version string into its components.

    Args:
        version: Version string to parse (e.g., "0.1.0.post11+ga524f7b.dirty")

    Returns:
        tuple containing:
            - base version (e.g., "0.1.0")
            - post count (e.g., "11" or None if not available)
            - git commit (e.g., "a524f7b" or None if not available)
            - dirty flag (True if the working directory had uncommitted changes)
    """
    base_version_match = re.match(r"^(\d+\.\d+\.\d+)", version)
    base_version = base_version_match.group(1) if base_version_match else version

    post_match = re.search(r"\.post(\d+)", version)
    post_count = post_match.group(1) if post_match else None

    git_match = re.search(r"\+g([a-f0-9]+)", version)
    git_commit = git_match.group(1) if git_match else None

    return base_version, post_count, git_commit, ".dirty" in version
