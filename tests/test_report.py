"""Tests for the run report."""

import json

from pacscript_updater.core.report import RunReport, UpdateResult, UpdateStatus


class TestRunReport:
    def test_exit_code_clean(self):
        report = RunReport()
        report.record(UpdateResult(path="a.pacscript", status=UpdateStatus.UPDATED))
        report.record(UpdateResult(path="b.pacscript", status=UpdateStatus.UP_TO_DATE))
        assert report.exit_code == 0
        assert len(report.updated) == 1

    def test_exit_code_with_failure(self):
        report = RunReport()
        report.record(UpdateResult(path="a.pacscript", status=UpdateStatus.UPDATED))
        report.record(UpdateResult(path="b.pacscript", error="pkgver: missing"))
        assert report.exit_code == 1
        assert [r.path for r in report.failed] == ["b.pacscript"]

    def test_default_status_is_failed(self):
        assert UpdateResult(path="a.pacscript").status == UpdateStatus.FAILED

    def test_to_dict(self):
        report = RunReport(started_at=100.0)
        report.record(UpdateResult(path="a.pacscript", pkgname="a", current="1.0", latest="1.1", status=UpdateStatus.CHECKED))
        d = report.to_dict()
        assert d["started_at"] == 100.0
        assert d["results"][0]["status"] == "checked"
        assert d["summary"]["checked"] == 1
        assert d["summary"]["failed"] == 0

    def test_save(self, tmp_path):
        report = RunReport()
        report.record(UpdateResult(path="a.pacscript", status=UpdateStatus.NEWER))
        out = tmp_path / "reports" / "run.json"
        report.save(out)
        assert json.loads(out.read_text())["results"][0]["status"] == "newer"
