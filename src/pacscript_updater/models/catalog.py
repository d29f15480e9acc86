"""
Catalog Models - Repology package records and the filters applied to them.
"""

from dataclasses import asdict, dataclass
from fnmatch import fnmatchcase


@dataclass(frozen=True)
class CatalogRecord:
    """
    One package entry of a Repology project.

    Repology reports the same project once per repository it appears in;
    only `repo`, `version` and `status` are guaranteed to be present.
    """

    repo: str
    version: str
    status: str = ""
    subrepo: str | None = None
    srcname: str | None = None
    binname: str | None = None
    visiblename: str | None = None
    origversion: str | None = None

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogRecord":
        """Deserialize from a Repology API package object."""
        return cls(
            repo=data["repo"],
            version=data["version"],
            status=data.get("status", ""),
            subrepo=data.get("subrepo"),
            srcname=data.get("srcname"),
            binname=data.get("binname"),
            visiblename=data.get("visiblename"),
            origversion=data.get("origversion"),
        )


NAME_FIELDS = ("srcname", "binname", "visiblename")


@dataclass(frozen=True)
class FilterSet:
    """
    Normalized repology metadata of one pacscript.

    `project` and `repo` identify what is tracked; everything else narrows
    the candidate records or rewrites their versions.
    """

    project: str
    repo: str
    subrepo: str | None = None
    srcname: str | None = None
    binname: str | None = None
    visiblename: str | None = None
    name: str | None = None
    status: str | None = None
    strip_prefix: str | None = None
    strip_suffix: str | None = None

    def matches(self, record: CatalogRecord) -> bool:
        if record.repo != self.repo:
            return False
        if self.subrepo is not None and record.subrepo != self.subrepo:
            return False
        if self.status is not None and record.status != self.status:
            return False
        for name_field in NAME_FIELDS:
            pattern = getattr(self, name_field)
            if pattern is not None and not _glob(getattr(record, name_field), pattern):
                return False
        if self.name is not None:
            return any(_glob(getattr(record, name_field), self.name) for name_field in NAME_FIELDS)
        return True

    def transform(self, version: str) -> str:
        if self.strip_prefix and version.startswith(self.strip_prefix):
            version = version[len(self.strip_prefix) :]
        if self.strip_suffix and version.endswith(self.strip_suffix):
            version = version[: -len(self.strip_suffix)]
        return version

    def describe(self) -> str:
        return ", ".join(f"{key}: {value}" for key, value in asdict(self).items() if value is not None)


def _glob(value: str | None, pattern: str) -> bool:
    return value is not None and fnmatchcase(value, pattern)
