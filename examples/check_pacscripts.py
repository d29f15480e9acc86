"""
Example: Check a directory of pacscripts and save a JSON report.

Usage:
    python examples/check_pacscripts.py ~/pacstall-programs/packages
"""

import asyncio
import sys
from pathlib import Path

from pacscript_updater import PacscriptUpdater
from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.report import UpdateStatus


async def main(root: Path):
    # -git pacscripts follow a branch, not releases
    paths = sorted(p for p in root.rglob("*.pacscript") if not p.stem.endswith("-git"))

    updater = PacscriptUpdater(UpdaterConfig())
    report = await updater.check(paths)
    updater.print_summary(report)

    output = Path("./pacscript_report.json")
    report.save(output)
    print(f"\n{len(report.with_status(UpdateStatus.CHECKED))} outdated, report saved to: {output.absolute()}")


if __name__ == "__main__":
    asyncio.run(main(Path(sys.argv[1] if len(sys.argv) > 1 else ".")))
