"""Tests for repology metadata parsing and record filtering."""

import pytest

from pacscript_updater.core.exceptions import InvalidFilterError
from pacscript_updater.models.catalog import CatalogRecord, FilterSet
from pacscript_updater.models.pacscript import PackageDocument
from pacscript_updater.parsers.repology import build_filters, parse_filter_line


@pytest.fixture
def doc():
    return PackageDocument.from_text('pkgname="foo"\npkgver="1.0"')


# ═══════════════════════════════════════════
# Metadata Lines
# ═══════════════════════════════════════════


class TestParseFilterLine:
    def test_single_pair(self):
        assert parse_filter_line("project: foo") == [("project", "foo")]

    def test_several_pairs(self):
        assert parse_filter_line("repo: debian_unstable, binname: foo*") == [
            ("repo", "debian_unstable"),
            ("binname", "foo*"),
        ]

    def test_comma_inside_value(self):
        assert parse_filter_line("visiblename: foo,bar") == [("visiblename", "foo,bar")]

    def test_dashed_key(self):
        assert parse_filter_line("strip-prefix: v") == [("strip_prefix", "v")]

    def test_unknown_key(self):
        with pytest.raises(InvalidFilterError, match="unknown filter key 'projcet'"):
            parse_filter_line("projcet: foo")

    def test_missing_separator(self):
        with pytest.raises(InvalidFilterError, match="expected 'key: value'"):
            parse_filter_line("foo")

    def test_empty_value(self):
        with pytest.raises(InvalidFilterError, match="empty value"):
            parse_filter_line("repo:")


class TestBuildFilters:
    def test_basic(self, doc):
        filters = build_filters(["project: ${pkgname}", "repo: debian_unstable"], doc)
        assert filters == FilterSet(project="foo", repo="debian_unstable")

    def test_later_line_wins(self, doc):
        filters = build_filters(["project: foo", "repo: arch", "repo: debian_unstable"], doc)
        assert filters.repo == "debian_unstable"

    def test_project_required(self, doc):
        with pytest.raises(InvalidFilterError, match="missing required filter 'project'"):
            build_filters(["repo: arch"], doc)

    def test_repo_required(self, doc):
        with pytest.raises(InvalidFilterError, match="missing required filter 'repo'") as exc:
            build_filters(["project: foo"], doc)
        assert exc.value.field == "repology"


# ═══════════════════════════════════════════
# Record Matching
# ═══════════════════════════════════════════


class TestFilterSet:
    def test_repo_must_match(self):
        filters = FilterSet(project="foo", repo="arch")
        assert filters.matches(CatalogRecord(repo="arch", version="1"))
        assert not filters.matches(CatalogRecord(repo="aur", version="1"))

    def test_subrepo_exact(self):
        filters = FilterSet(project="foo", repo="debian_unstable", subrepo="main")
        assert filters.matches(CatalogRecord(repo="debian_unstable", version="1", subrepo="main"))
        assert not filters.matches(CatalogRecord(repo="debian_unstable", version="1", subrepo="contrib"))

    def test_name_glob(self):
        filters = FilterSet(project="foo", repo="arch", binname="foo-*")
        assert filters.matches(CatalogRecord(repo="arch", version="1", binname="foo-bin"))
        assert not filters.matches(CatalogRecord(repo="arch", version="1", binname="bar"))
        assert not filters.matches(CatalogRecord(repo="arch", version="1"))

    def test_name_matches_any_name_field(self):
        filters = FilterSet(project="foo", repo="arch", name="libfoo")
        assert filters.matches(CatalogRecord(repo="arch", version="1", srcname="libfoo"))
        assert filters.matches(CatalogRecord(repo="arch", version="1", visiblename="libfoo"))
        assert not filters.matches(CatalogRecord(repo="arch", version="1", binname="foo"))

    def test_status(self):
        filters = FilterSet(project="foo", repo="arch", status="newest")
        assert filters.matches(CatalogRecord(repo="arch", version="1", status="newest"))
        assert not filters.matches(CatalogRecord(repo="arch", version="1", status="outdated"))

    def test_transform(self):
        filters = FilterSet(project="foo", repo="arch", strip_prefix="v", strip_suffix="-stable")
        assert filters.transform("v1.2-stable") == "1.2"
        assert filters.transform("1.2") == "1.2"

    def test_describe(self):
        assert FilterSet(project="foo", repo="arch").describe() == "project: foo, repo: arch"

    def test_record_from_dict(self):
        record = CatalogRecord.from_dict({"repo": "arch", "version": "1.0", "status": "newest", "binname": "foo"})
        assert record.to_dict()["binname"] == "foo"
        assert record.subrepo is None
