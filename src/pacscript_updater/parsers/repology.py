"""
Repology metadata parser.

Turns the `repology` array of a pacscript into a FilterSet:

    repology=("project: ${pkgname}" "repo: debian_unstable, binname: foo*")

Each element holds one or more `key: value` pairs separated by commas.
Later keys override earlier ones. Unknown keys are rejected so a typo can
never silently change which upstream project is tracked.
"""

import logging
import re

from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import InvalidFilterError
from pacscript_updater.models.catalog import FilterSet
from pacscript_updater.models.pacscript import PackageDocument
from pacscript_updater.parsers.dynamic import resolve_dynamic

logger = logging.getLogger(__name__)

FILTER_KEYS = frozenset(
    {
        "project",
        "repo",
        "subrepo",
        "srcname",
        "binname",
        "visiblename",
        "name",
        "status",
        "strip_prefix",
        "strip_suffix",
    }
)
REQUIRED_KEYS = ("project", "repo")

_PAIR_SEPARATOR_RE = re.compile(r",\s*(?=[\w-]+\s*:)")


def parse_filter_line(line: str) -> list[tuple[str, str]]:
    """Split one metadata line into (key, value) pairs."""
    pairs = []
    for chunk in _PAIR_SEPARATOR_RE.split(line.strip()):
        key, sep, value = chunk.partition(":")
        key = key.strip().replace("-", "_")
        value = value.strip()
        if not sep:
            raise InvalidFilterError(f"expected 'key: value', got {chunk!r}", field="repology")
        if key not in FILTER_KEYS:
            raise InvalidFilterError(f"unknown filter key {key!r}", field="repology")
        if not value:
            raise InvalidFilterError(f"empty value for filter {key!r}", field="repology")
        pairs.append((key, value))
    return pairs


def build_filters(
    lines: list[str], doc: PackageDocument, config: UpdaterConfig | None = None
) -> FilterSet:
    """Resolve each metadata line against the document and merge the pairs."""
    collected: dict[str, str] = {}
    for raw in lines:
        line = resolve_dynamic(raw, doc, config)
        for key, value in parse_filter_line(line):
            if key in collected and collected[key] != value:
                logger.debug(f"Filter {key!r} redeclared: {collected[key]!r} -> {value!r}")
            collected[key] = value

    for key in REQUIRED_KEYS:
        if key not in collected:
            raise InvalidFilterError(f"missing required filter {key!r}", field="repology")

    return FilterSet(**collected)
