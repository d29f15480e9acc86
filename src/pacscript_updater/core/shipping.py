"""
Shipping updated pacscripts upstream.

Prepares a `ship-<pkgname>` branch off the base branch before the pacscript
is written, then commits, pushes to the `origin` fork and opens a pull
request against the upstream repository through the GitHub API.
"""

import logging
import re
import subprocess
from pathlib import Path

from github import Auth, Github, GithubException

from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import ShipError

logger = logging.getLogger(__name__)

GITHUB_REMOTE_RE = re.compile(r"github\.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


def _default_github(token: str) -> Github:
    return Github(auth=Auth.Token(token))


class GitShipper:
    """Commits a rewritten pacscript on its own branch and proposes it upstream."""

    def __init__(self, config: UpdaterConfig, runner=subprocess.run, github_factory=_default_github):
        self.config = config
        self.runner = runner
        self.github_factory = github_factory

    def _git(self, *args: str) -> str:
        try:
            result = self.runner(["git", *args], check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise ShipError(f"git {' '.join(args)} failed: {(e.stderr or '').strip()}") from e
        except FileNotFoundError as e:
            raise ShipError("git is not installed") from e
        return (result.stdout or "").strip()

    @staticmethod
    def branch_name(pkgname: str) -> str:
        return f"ship-{pkgname}"

    @staticmethod
    def commit_message(pkgname: str, old: str, new: str) -> str:
        return f"upd({pkgname}): `{old}` -> `{new}`"

    def ensure_repository(self) -> None:
        self._git("rev-parse")

    def prepare_branch(self, pkgname: str) -> str:
        """Check out a fresh ship branch from the base branch."""
        branch = self.branch_name(pkgname)
        logger.info(f"Checking out {self.config.base_branch}, then {branch}")
        self._git("checkout", self.config.base_branch)
        # -B resets a leftover ship branch from an earlier run
        self._git("checkout", "-B", branch)
        return branch

    def publish(self, path: Path, pkgname: str, old: str, new: str) -> str | None:
        """Commit and push the pacscript; returns the pull request URL if one was opened."""
        branch = self.branch_name(pkgname)
        self._git("add", str(path))
        self._git("commit", "-m", self.commit_message(pkgname, old, new))
        self._git("push", "--set-upstream", "origin", branch)
        logger.info(f"Pushed {branch} to origin")
        return self.open_pull_request(pkgname, old, new)

    def open_pull_request(self, pkgname: str, old: str, new: str) -> str | None:
        if not self.config.github_token:
            logger.warning("No GITHUB_TOKEN. Branch pushed, open the pull request manually.")
            return None

        remote = self._git("remote", "get-url", "origin")
        match = GITHUB_REMOTE_RE.search(remote)
        if not match:
            raise ShipError(f"origin remote {remote!r} is not a GitHub repository")

        gh = self.github_factory(self.config.github_token)
        try:
            pull = gh.get_repo(self.config.upstream_repo).create_pull(
                title=self.commit_message(pkgname, old, new),
                body=f"Bumps `{pkgname}` from `{old}` to `{new}`.",
                head=f"{match.group('owner')}:{self.branch_name(pkgname)}",
                base=self.config.base_branch,
            )
        except GithubException as e:
            raise ShipError(f"could not open pull request: {e}") from e
        logger.info(f"Opened {pull.html_url}")
        return pull.html_url
