"""
Pacscript Updater - Bump pacscripts to their newest upstream release.

Reads the version-tracking metadata of a pacscript, asks Repology for the
newest matching release, refetches the sources and rewrites the pkgver and
checksums in place.
"""

__version__ = "1.0.0"


def __getattr__(name: str):
    """Lazy import for heavy dependencies."""
    if name == "PacscriptUpdater":
        from pacscript_updater.core.updater import PacscriptUpdater

        return PacscriptUpdater
    if name == "PackageDocument":
        from pacscript_updater.models.pacscript import PackageDocument

        return PackageDocument
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PacscriptUpdater", "PackageDocument", "__version__"]
