"""
Version ordering and newest-version selection.

Ordering follows Debian semantics (epochs, `~` sorting before release,
numeric-aware segments) through python-debian, the same rules dpkg applies
to the packages pacstall produces.
"""

import logging
import re

from debian.debian_support import Version

from pacscript_updater.core.exceptions import NoMatchingVersionError
from pacscript_updater.models.catalog import CatalogRecord, FilterSet

logger = logging.getLogger(__name__)

# Statuses Repology assigns to versions it could not place on the main line
IGNORED_STATUSES = frozenset({"ignored", "incorrect", "untrusted", "noscheme", "rolling"})

# A version string that is safe to write into a pacscript
SAFE_VERSION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.+~:_-]*\Z")


def compare_versions(version1: str, version2: str) -> int:
    """Return -1, 0 or 1. Raises ValueError for unparsable versions."""
    left, right = Version(version1), Version(version2)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def is_newer(candidate: str, current: str) -> bool:
    return compare_versions(candidate, current) > 0


def select_newest(
    candidates: list[CatalogRecord], filters: FilterSet, current_version: str
) -> str:
    """
    Reduce catalog records to the single newest matching version.

    Raises NoMatchingVersionError when nothing survives filtering; the
    current version is never returned as a fallback.
    """
    matching = [record for record in candidates if filters.matches(record)]
    if filters.status is None:
        matching = [record for record in matching if record.status not in IGNORED_STATUSES]

    newest: Version | None = None
    for record in matching:
        transformed = filters.transform(record.version)
        try:
            parsed = Version(transformed)
        except ValueError:
            logger.warning(f"Skipping unparsable version {transformed!r} from {record.repo}")
            continue
        if newest is None or parsed > newest:
            newest = parsed

    if newest is None:
        raise NoMatchingVersionError(
            filters.project,
            f"{len(candidates)} records, none matched ({filters.describe()})",
        )

    logger.debug(
        f"{filters.project}: newest {newest} from {len(matching)} matching records (current {current_version})"
    )
    return str(newest)
