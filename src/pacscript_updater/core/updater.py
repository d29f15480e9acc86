"""
Pacscript Updater - Orchestrates one update run.

For every pacscript, in order:
- parse pkgname, pkgver and the repology metadata
- query Repology and select the newest matching version
- patch pkgver, refetch the sources and patch their checksums
- show the diff, persist the file and optionally ship it

A failure aborts only the pacscript being processed. Nothing is written to
disk unless every step before the write succeeded.
"""

import difflib
import logging
import os
import shutil
from pathlib import Path

import aiofiles
import httpx
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from pacscript_updater.core.catalog import RepologyClient
from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import (
    MalformedDocumentError,
    NoMatchingVersionError,
    UpdaterError,
    WriteError,
)
from pacscript_updater.core.fetcher import SourceFetcher
from pacscript_updater.core.report import RunReport, UpdateResult, UpdateStatus
from pacscript_updater.core.shipping import GitShipper
from pacscript_updater.core.version import SAFE_VERSION_RE, is_newer, select_newest
from pacscript_updater.models.catalog import FilterSet
from pacscript_updater.models.pacscript import LinePatch, PackageDocument, version_pattern
from pacscript_updater.parsers.dynamic import resolve_dynamic
from pacscript_updater.parsers.pacscript import (
    declared_arch_qualifiers,
    get_array,
    get_array_field,
    get_scalar,
    get_scalar_field,
    get_sources,
    get_sum_array_field,
)
from pacscript_updater.parsers.repology import build_filters

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    UpdateStatus.UPDATED: "green",
    UpdateStatus.UP_TO_DATE: "green",
    UpdateStatus.NEWER: "magenta",
    UpdateStatus.CHECKED: "blue",
    UpdateStatus.FAILED: "red",
}


class PacscriptUpdater:
    """
    Drives parsing, version resolution and rewriting for a list of pacscripts.

    Pacscripts are processed one after another over a single HTTP client;
    `transport` lets tests substitute httpx.MockTransport.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        console: Console | None = None,
        shipper: GitShipper | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.console = console or Console()
        self.shipper = shipper or (GitShipper(config) if config.ship else None)
        self.transport = transport

    # ──────────────────────────────────────────────
    # Document I/O
    # ──────────────────────────────────────────────

    async def load(self, path: Path) -> PackageDocument:
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedDocumentError(f"cannot read {path}: {e}") from e
        return PackageDocument.from_text(text, path)

    async def persist(self, doc: PackageDocument) -> None:
        """Write through a sibling temp file so a failed write leaves the original intact."""
        tmp = doc.path.with_name(f".{doc.path.name}.tmp")
        try:
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(doc.render())
            shutil.copymode(doc.path, tmp)
            os.replace(tmp, doc.path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise WriteError(doc.path, str(e)) from e
        logger.info(f"Wrote {doc.path}")

    # ──────────────────────────────────────────────
    # Resolution
    # ──────────────────────────────────────────────

    def metadata(self, doc: PackageDocument) -> tuple[str, str, FilterSet]:
        """Required fields of a pacscript: pkgname, pkgver and its filters."""
        pkgname = get_scalar("pkgname", doc)
        if not pkgname:
            raise MalformedDocumentError("missing", field="pkgname")
        pkgver = get_scalar("pkgver", doc)
        if not pkgver:
            raise MalformedDocumentError("missing", field="pkgver")
        repology = get_array("repology", doc)
        if not repology:
            raise MalformedDocumentError("missing or empty", field="repology")
        return pkgname, pkgver, build_filters(repology, doc, self.config)

    @staticmethod
    def compare(newest: str, current: str) -> UpdateStatus | None:
        """UP_TO_DATE / NEWER when nothing should change, None when outdated."""
        try:
            if is_newer(newest, current):
                return None
            return UpdateStatus.NEWER if is_newer(current, newest) else UpdateStatus.UP_TO_DATE
        except ValueError as e:
            raise MalformedDocumentError(f"{current!r} is not a valid version", field="pkgver") from e

    # ──────────────────────────────────────────────
    # Rewriting
    # ──────────────────────────────────────────────

    def source_array_names(self, doc: PackageDocument) -> list[str]:
        names = ["source"] if get_array_field("source", doc) is not None else []
        return names + [f"source_{arch}" for arch in declared_arch_qualifiers(doc)]

    def bump_version(self, doc: PackageDocument, old: str, new: str) -> PackageDocument:
        """Patch the pkgver value and any source entry that spells the old version out as a whole version."""
        pkgver = get_scalar_field("pkgver", doc)
        patches = [LinePatch.for_token(pkgver.tokens[0], old, new, bounded=True)]
        pattern = version_pattern(old)

        for name in self.source_array_names(doc):
            for token in get_array_field(name, doc).tokens:
                if not pattern.search(token.value):
                    continue
                if not token.single_line:
                    logger.warning(f"{name}: not patching multi-line entry at line {token.line + 1}")
                    continue
                patches.append(LinePatch.for_token(token, old, new, bounded=True))

        return doc.apply_patches(patches)

    async def refresh_checksums(self, doc: PackageDocument, fetcher: SourceFetcher) -> PackageDocument:
        """Refetch every checked source and patch the checksum at the same array index."""
        patches: dict[tuple[int, int], LinePatch] = {}
        fetched: dict[tuple[str, tuple[str, ...]], dict[str, str]] = {}

        arches: list[str | None] = [None] if get_array_field("source", doc) is not None else []
        arches += declared_arch_qualifiers(doc)

        for arch in arches:
            overrides = {"CARCH": arch or self.config.arch}

            def resolve(value: str) -> str:
                return resolve_dynamic(value, doc, self.config, overrides)

            for entry in get_sources(doc, arch, self.config.hash_types, resolve=resolve):
                checked = entry.checked_hashes
                if entry.is_vcs or not checked:
                    logger.debug(f"Skipping unchecked source {entry.url}")
                    continue

                key = (entry.url, tuple(checked))
                if key not in fetched:
                    fetched[key] = await fetcher.fetch(entry.url, checked, entry.filename)
                digests = fetched[key]

                for hashtype in checked:
                    token = get_sum_array_field(hashtype, arch, doc).tokens[entry.index]
                    if token.value == digests[hashtype]:
                        continue
                    patch = LinePatch.for_token(token, token.value, digests[hashtype])
                    previous = patches.get((patch.line, patch.start))
                    if previous is not None and previous.new != patch.new:
                        raise MalformedDocumentError(
                            f"checksum at line {patch.line + 1} is shared by sources with different content",
                            field=f"{hashtype}sums",
                        )
                    patches[(patch.line, patch.start)] = patch

        return doc.apply_patches(list(patches.values()))

    def show_diff(self, before: PackageDocument, after: PackageDocument) -> None:
        name = before.path.name if before.path else "pacscript"
        diff = difflib.unified_diff(
            before.render().splitlines(keepends=True),
            after.render().splitlines(keepends=True),
            fromfile=f"Outdated {name}",
            tofile=f"Updated {name}",
        )
        self.console.print(
            Panel(Syntax("".join(diff), "diff", line_numbers=True), title="Diff", border_style="bold blue")
        )

    # ──────────────────────────────────────────────
    # Orchestration
    # ──────────────────────────────────────────────

    async def process(
        self, path: Path, catalog: RepologyClient, fetcher: SourceFetcher, apply: bool = True
    ) -> UpdateResult:
        """Process a single pacscript; failures are recorded, not raised."""
        result = UpdateResult(path=str(path))
        try:
            doc = await self.load(path)
            pkgname, current, filters = self.metadata(doc)
            result.pkgname, result.current = pkgname, current

            newest = select_newest(await catalog.query(filters), filters, current)
            result.latest = newest

            status = self.compare(newest, current)
            if status is not None:
                result.status = status
                return result
            if not apply:
                result.status = UpdateStatus.CHECKED
                return result
            if not SAFE_VERSION_RE.match(newest):
                raise NoMatchingVersionError(filters.project, f"refusing unsafe version string {newest!r}")

            updated = self.bump_version(doc, current, newest)
            updated = await self.refresh_checksums(updated, fetcher)
            self.show_diff(doc, updated)

            if self.config.dry_run:
                result.status = UpdateStatus.CHECKED
                return result

            if self.shipper:
                self.shipper.prepare_branch(pkgname)
            await self.persist(updated)
            if self.shipper:
                result.pull_request = self.shipper.publish(path, pkgname, current, newest)
            result.status = UpdateStatus.UPDATED

        except UpdaterError as e:
            logger.error(f"{path.name}: {e.message}")
            result.status = UpdateStatus.FAILED
            result.error = e.message

        return result

    async def run(self, paths: list[Path], apply: bool = True) -> RunReport:
        """
        Update (or with apply=False only check) every pacscript in `paths`.

        Args:
            paths: Pacscript files, processed in the given order.
            apply: Rewrite outdated pacscripts instead of only reporting them.

        Returns:
            RunReport with one result per path.
        """
        report = RunReport()
        timeout = httpx.Timeout(self.config.catalog_timeout, connect=60.0)

        async with httpx.AsyncClient(transport=self.transport, timeout=timeout, follow_redirects=True) as client:
            catalog = RepologyClient(client, self.config)
            fetcher = SourceFetcher(client, self.config)

            for path in paths:
                self.console.print(f"[bold blue]=>[/bold blue] {path.name}")
                result = report.record(await self.process(path, catalog, fetcher, apply))
                self._print_result(result)

        return report

    async def check(self, paths: list[Path]) -> RunReport:
        return await self.run(paths, apply=False)

    def _print_result(self, result: UpdateResult) -> None:
        style = STATUS_STYLES[result.status]
        match result.status:
            case UpdateStatus.FAILED:
                detail = result.error
            case UpdateStatus.UP_TO_DATE:
                detail = result.current
            case _:
                detail = f"{result.current} => {result.latest}"
        self.console.print(f"   [{style}]{result.status.value}[/{style}] {detail}")

    def print_summary(self, report: RunReport) -> None:
        table = Table(title="Summary", expand=True)
        table.add_column("Pacscript", justify="center")
        table.add_column("Current", justify="right")
        table.add_column("Latest", justify="right")
        table.add_column("Status", justify="center")
        table.add_column("Detail")

        for result in report.results:
            style = STATUS_STYLES[result.status]
            table.add_row(
                Path(result.path).stem,
                result.current or "-",
                result.latest or "-",
                f"[{style}]{result.status.value}[/{style}]",
                result.error or result.pull_request or "",
            )
        self.console.print(table)
