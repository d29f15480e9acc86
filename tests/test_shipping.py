"""Tests for the git/GitHub ship flow."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from github import GithubException

from pacscript_updater.core.config import UpdaterConfig
from pacscript_updater.core.exceptions import ShipError
from pacscript_updater.core.shipping import GitShipper


class FakeGit:
    """Records git invocations and answers `remote get-url`."""

    def __init__(self, remote="git@github.com:someone/pacstall-programs.git", fail_on=None):
        self.calls: list[list[str]] = []
        self.remote = remote
        self.fail_on = fail_on

    def __call__(self, cmd, check=True, capture_output=True, text=True):
        self.calls.append(cmd[1:])
        if self.fail_on and cmd[1] == self.fail_on:
            raise subprocess.CalledProcessError(1, cmd, stderr="fatal: nope\n")
        stdout = self.remote + "\n" if cmd[1:3] == ["remote", "get-url"] else ""
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")


@pytest.fixture
def github():
    gh = MagicMock()
    gh.get_repo.return_value.create_pull.return_value.html_url = "https://github.com/pacstall/pacstall-programs/pull/1"
    return gh


class TestGitShipper:
    def test_commit_message(self):
        assert GitShipper.commit_message("foo", "1.0", "1.2") == "upd(foo): `1.0` -> `1.2`"

    def test_prepare_branch(self):
        git = FakeGit()
        shipper = GitShipper(UpdaterConfig(), runner=git)
        assert shipper.prepare_branch("foo") == "ship-foo"
        assert git.calls == [["checkout", "master"], ["checkout", "-B", "ship-foo"]]

    def test_publish_opens_pull_request(self, github):
        git = FakeGit()
        shipper = GitShipper(UpdaterConfig(github_token="t0ken"), runner=git, github_factory=lambda token: github)

        url = shipper.publish(Path("packages/foo/foo.pacscript"), "foo", "1.0", "1.2")

        assert url == "https://github.com/pacstall/pacstall-programs/pull/1"
        assert git.calls[:3] == [
            ["add", "packages/foo/foo.pacscript"],
            ["commit", "-m", "upd(foo): `1.0` -> `1.2`"],
            ["push", "--set-upstream", "origin", "ship-foo"],
        ]
        github.get_repo.assert_called_once_with("pacstall/pacstall-programs")
        kwargs = github.get_repo.return_value.create_pull.call_args.kwargs
        assert kwargs["head"] == "someone:ship-foo"
        assert kwargs["base"] == "master"

    def test_publish_without_token_skips_pull_request(self, github):
        git = FakeGit()
        shipper = GitShipper(UpdaterConfig(), runner=git, github_factory=lambda token: github)
        assert shipper.publish(Path("foo.pacscript"), "foo", "1.0", "1.2") is None
        github.get_repo.assert_not_called()

    def test_git_failure(self):
        shipper = GitShipper(UpdaterConfig(), runner=FakeGit(fail_on="push"))
        with pytest.raises(ShipError, match="fatal: nope"):
            shipper.publish(Path("foo.pacscript"), "foo", "1.0", "1.2")

    def test_non_github_remote(self, github):
        git = FakeGit(remote="https://gitlab.com/someone/programs.git")
        shipper = GitShipper(UpdaterConfig(github_token="t0ken"), runner=git, github_factory=lambda token: github)
        with pytest.raises(ShipError, match="not a GitHub repository"):
            shipper.open_pull_request("foo", "1.0", "1.2")

    def test_github_api_error(self, github):
        github.get_repo.return_value.create_pull.side_effect = GithubException(422, {"message": "exists"}, None)
        shipper = GitShipper(UpdaterConfig(github_token="t0ken"), runner=FakeGit(), github_factory=lambda token: github)
        with pytest.raises(ShipError, match="could not open pull request"):
            shipper.open_pull_request("foo", "1.0", "1.2")

    def test_ensure_repository(self):
        with pytest.raises(ShipError):
            GitShipper(UpdaterConfig(), runner=FakeGit(fail_on="rev-parse")).ensure_repository()
