"""
Error types raised by the updater.

Every failure carries enough context (field name, expression text, project or
URL) to be diagnosed without re-reading the pacscript.
"""


class UpdaterError(Exception):
    """Base class for all per-document failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedDocumentError(UpdaterError):
    """A required field is missing or a field is syntactically broken."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(f"{field}: {message}" if field else message)
        self.field = field


class InvalidFilterError(MalformedDocumentError):
    """A repology metadata line declares an unknown or empty filter."""


class DynamicEvalError(UpdaterError):
    """Evaluating a dynamic value produced no usable output."""

    def __init__(self, expression: str, message: str):
        super().__init__(f"could not evaluate {expression!r}: {message}")
        self.expression = expression


class CatalogUnreachableError(UpdaterError):
    """Repology could not be reached or answered with an unusable response."""

    def __init__(self, project: str, message: str):
        super().__init__(f"repology query for {project!r} failed: {message}")
        self.project = project


class NoMatchingVersionError(UpdaterError):
    """No catalog record survived the declared filters."""

    def __init__(self, project: str, message: str):
        super().__init__(f"no matching version for {project!r}: {message}")
        self.project = project


class FetchError(UpdaterError):
    """A source artifact could not be downloaded."""

    def __init__(self, url: str, message: str):
        super().__init__(f"could not fetch {url}: {message}")
        self.url = url


class WriteError(UpdaterError):
    """The rewritten pacscript could not be persisted."""

    def __init__(self, path, message: str):
        super().__init__(f"could not write {path}: {message}")
        self.path = path


class ShipError(UpdaterError):
    """A git or pull request step of the ship flow failed."""
