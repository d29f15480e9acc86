"""
Pacscript Updater CLI - Bump pacscripts to the newest upstream version.

Usage:
    pacscript-updater update foo.pacscript bar.pacscript
    pacscript-updater update --ship --token $GITHUB_TOKEN foo.pacscript
    pacscript-updater check *.pacscript
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from pacscript_updater.core.config import DEFAULT_HASH_TYPES
from pacscript_updater.core.fetcher import HASH_ALGORITHMS


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def validate_pacscripts(ctx: click.Context, param: click.Parameter, pacscripts: tuple[Path, ...]) -> list[Path]:
    """Only `.pacscript` files qualify, and `-git` pacscripts track no releases."""
    for pacscript in pacscripts:
        if pacscript.suffix != ".pacscript":
            raise click.BadParameter(f"{pacscript} does not have a .pacscript extension.")
        if pacscript.stem.endswith("-git"):
            raise click.BadParameter(f"{pacscript.name}: git pacscripts are not supported.")
    return list(pacscripts)


pacscripts_argument = click.argument(
    "pacscripts",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    callback=validate_pacscripts,
)
repology_url_option = click.option(
    "--repology-url",
    envvar="PACUP_REPOLOGY_URL",
    default="https://repology.org",
    show_default=True,
    help="Base URL of the Repology instance.",
)
verbose_option = click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")


@click.group()
@click.version_option(package_name="pacscript-updater")
def cli():
    """Pacscript Updater - Bump pacscripts to their newest upstream version."""
    pass


@cli.command()
@pacscripts_argument
@click.option("--ship", "-s", is_flag=True, help="Commit, push and open a pull request for each update.")
@click.option("--dry-run", "-n", is_flag=True, help="Show the diff without writing anything.")
@click.option(
    "--hash-type",
    "-H",
    "hash_types",
    multiple=True,
    type=click.Choice(sorted(HASH_ALGORITHMS)),
    default=DEFAULT_HASH_TYPES,
    show_default=True,
    help="Checksum arrays to recompute.",
)
@click.option("--report", "-r", type=click.Path(dir_okay=False, path_type=Path), help="Save a JSON run report.")
@click.option("--token", "-t", envvar="GITHUB_TOKEN", default=None, help="GitHub token for opening pull requests.")
@click.option("--upstream-repo", default="pacstall/pacstall-programs", show_default=True, help="Pull request target.")
@click.option("--base-branch", default="master", show_default=True, help="Branch ship branches start from.")
@repology_url_option
@verbose_option
def update(pacscripts, ship, dry_run, hash_types, report, token, upstream_repo, base_branch, repology_url, verbose):
    """Update pacscripts to the newest version known to Repology."""
    from pacscript_updater.core.config import UpdaterConfig
    from pacscript_updater.core.exceptions import ShipError
    from pacscript_updater.core.updater import PacscriptUpdater

    _configure_logging(verbose)

    if ship and dry_run:
        raise click.UsageError("--ship can't be combined with --dry-run.")

    config = UpdaterConfig(
        hash_types=tuple(hash_types),
        repology_url=repology_url,
        dry_run=dry_run,
        ship=ship,
        base_branch=base_branch,
        upstream_repo=upstream_repo,
        github_token=token,
    )
    updater = PacscriptUpdater(config)

    if updater.shipper:
        try:
            updater.shipper.ensure_repository()
        except ShipError as e:
            raise click.UsageError(f"--ship can only be used inside a git repository ({e.message}).")

    run_report = asyncio.run(updater.run(pacscripts))
    updater.print_summary(run_report)

    if report:
        run_report.save(report)
    sys.exit(run_report.exit_code)


@cli.command()
@pacscripts_argument
@repology_url_option
@verbose_option
def check(pacscripts, repology_url, verbose):
    """Show current and newest versions without modifying anything."""
    from pacscript_updater.core.config import UpdaterConfig
    from pacscript_updater.core.updater import PacscriptUpdater

    _configure_logging(verbose)

    updater = PacscriptUpdater(UpdaterConfig(repology_url=repology_url))
    run_report = asyncio.run(updater.check(pacscripts))
    updater.print_summary(run_report)
    sys.exit(run_report.exit_code)


if __name__ == "__main__":
    cli()
