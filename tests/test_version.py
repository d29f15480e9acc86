"""Tests for version ordering and newest-version selection."""

import pytest

from pacscript_updater.core.exceptions import NoMatchingVersionError
from pacscript_updater.core.version import SAFE_VERSION_RE, compare_versions, is_newer, select_newest
from pacscript_updater.models.catalog import CatalogRecord, FilterSet


def record(version: str, repo: str = "debian_unstable", status: str = "newest", **kwargs) -> CatalogRecord:
    return CatalogRecord(repo=repo, version=version, status=status, **kwargs)


# ═══════════════════════════════════════════
# Ordering
# ═══════════════════════════════════════════


class TestCompareVersions:
    def test_numeric_segments(self):
        assert compare_versions("1.2.0", "1.10.0") == -1

    def test_tilde_sorts_before_release(self):
        assert compare_versions("2.0.0~rc1", "2.0.0") == -1
        assert compare_versions("1.10.0", "2.0.0~rc1") == -1

    def test_equal(self):
        assert compare_versions("1.0", "1.0") == 0

    def test_epoch(self):
        assert compare_versions("1:0.9", "2.0") == 1

    def test_is_newer(self):
        assert is_newer("1.1", "1.0")
        assert not is_newer("1.0", "1.0")

    def test_sorted_order(self):
        from functools import cmp_to_key

        versions = ["2.0.0", "1.10.0", "2.0.0~rc1", "1.2.0"]
        assert sorted(versions, key=cmp_to_key(compare_versions)) == ["1.2.0", "1.10.0", "2.0.0~rc1", "2.0.0"]


class TestSafeVersion:
    @pytest.mark.parametrize("version", ["1.2", "2:1.0~rc1", "1.0+dfsg-1", "20240101"])
    def test_accepted(self, version):
        assert SAFE_VERSION_RE.match(version)

    @pytest.mark.parametrize("version", ["1.0; rm -rf /", "$(id)", "1.0\n", "", "-1.0"])
    def test_rejected(self, version):
        assert not SAFE_VERSION_RE.match(version)


# ═══════════════════════════════════════════
# Selection
# ═══════════════════════════════════════════


class TestSelectNewest:
    def test_picks_highest_matching(self):
        filters = FilterSet(project="foo", repo="debian_unstable")
        candidates = [
            record("1.0"),
            record("1.2"),
            record("9.9", repo="aur"),
        ]
        assert select_newest(candidates, filters, "1.0") == "1.2"

    def test_strip_prefix_applied_before_comparing(self):
        filters = FilterSet(project="foo", repo="github", strip_prefix="v")
        candidates = [record("v1.9", repo="github"), record("v1.10", repo="github")]
        assert select_newest(candidates, filters, "1.0") == "1.10"

    def test_ignored_statuses_dropped(self):
        filters = FilterSet(project="foo", repo="debian_unstable")
        candidates = [record("1.1"), record("20991231", status="ignored"), record("3.0", status="rolling")]
        assert select_newest(candidates, filters, "1.0") == "1.1"

    def test_status_filter_overrides_ignored(self):
        filters = FilterSet(project="foo", repo="debian_unstable", status="rolling")
        candidates = [record("1.1"), record("3.0", status="rolling")]
        assert select_newest(candidates, filters, "1.0") == "3.0"

    def test_unparsable_versions_skipped(self):
        filters = FilterSet(project="foo", repo="debian_unstable")
        candidates = [record("not a version!"), record("1.5")]
        assert select_newest(candidates, filters, "1.0") == "1.5"

    def test_nothing_matches(self):
        filters = FilterSet(project="foo", repo="debian_unstable", binname="foo")
        with pytest.raises(NoMatchingVersionError) as exc:
            select_newest([record("1.2", binname="bar")], filters, "1.0")
        assert exc.value.project == "foo"

    def test_empty_catalog(self):
        with pytest.raises(NoMatchingVersionError):
            select_newest([], FilterSet(project="foo", repo="arch"), "1.0")
