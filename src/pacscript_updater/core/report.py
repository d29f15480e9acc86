"""
Run report for an updater invocation.

Tracks the outcome of every processed pacscript so the CLI can print a
summary, pick an exit status and optionally save the results as JSON.
"""

import json
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path


class UpdateStatus(Enum):
    """Outcome of processing one pacscript."""

    UPDATED = "updated"
    UP_TO_DATE = "up_to_date"
    NEWER = "newer"  # pacscript is ahead of every catalog record
    CHECKED = "checked"  # outdated, reported but not rewritten
    FAILED = "failed"


@dataclass
class UpdateResult:
    """What happened to a single pacscript."""

    path: str
    pkgname: str | None = None
    current: str | None = None
    latest: str | None = None
    status: UpdateStatus = UpdateStatus.FAILED
    error: str | None = None
    pull_request: str | None = None


@dataclass
class RunReport:
    """Results of one invocation, in processing order."""

    started_at: float = field(default_factory=time.time)
    results: list[UpdateResult] = field(default_factory=list)

    def record(self, result: UpdateResult) -> UpdateResult:
        self.results.append(result)
        return result

    def with_status(self, status: UpdateStatus) -> list[UpdateResult]:
        return [result for result in self.results if result.status == status]

    @property
    def failed(self) -> list[UpdateResult]:
        return self.with_status(UpdateStatus.FAILED)

    @property
    def updated(self) -> list[UpdateResult]:
        return self.with_status(UpdateStatus.UPDATED)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible dict (handling enums)."""
        data = asdict(self)
        for result in data["results"]:
            result["status"] = result["status"].value
        data["summary"] = {status.value: len(self.with_status(status)) for status in UpdateStatus}
        return data

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2) + "\n")
