"""
Tests for the scan request lifecycle: create, run in batches, edit, delete and read back.
"""
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy import func, select

from app.features.scan.exceptions import DeviceConfigNotFoundError, ScanRequestNotFoundError
from app.features.scan.models.scan_request import ScanRequestStatus
from app.features.scan.models.scan_result import ScanResult
from app.features.scan.models.scan_schedule import ScanSchedule
from app.features.scan.services.orchestration.scheduler import schedule_scan
from app.features.scan.services.scan import scan_service
from app.features.scan.services.scan.scan_executor import ScanExecutor, completed_message
from app.features.scan.services.scan.scan_store import save_scan_result

from conftest import axe_result


def count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


class TestCreateScan:

    def test_discovers_from_site_origin(self, db, fake_browser):
        browser = fake_browser(pages={
            "https://example.com": '<a href="/a">A</a><a href="https://other.com/b">B</a>',
        })

        scan_request = scan_service.create_scan(
            db,
            url="https://example.com/landing",
            guidance=["wcag2a"],
            depth=1,
            device="Desktop",
            steps=[{"url": "https://example.com/landing", "findBy": "Id", "findValue": "ok", "stepAction": "Click"}],
            name="Example",
            project_id="proj-1",
            username="auditor",
            browser_factory=lambda: browser,
        )

        assert scan_request.url == "https://example.com/landing"
        assert scan_request.urls == ["https://example.com", "https://example.com/a"]
        assert scan_request.status is ScanRequestStatus.incomplete
        assert scan_request.steps[0]["step_action"] == "Click"
        assert browser.closed == 1

    def test_unknown_device_rejected_before_browser_opens(self, db):
        browser_factory = Mock()

        with pytest.raises(DeviceConfigNotFoundError):
            scan_service.create_scan(db, "https://example.com", ["wcag2a"], 0, "Toaster", browser_factory=browser_factory)
        browser_factory.assert_not_called()


class TestRunScans:

    def test_one_failure_does_not_affect_the_others(self):
        executor = Mock(spec=ScanExecutor)

        def run(scan_request_id, url_list, device_name):
            if scan_request_id == "b":
                raise RuntimeError("chrome not reachable")
            return completed_message(scan_request_id)

        executor.run.side_effect = run

        outcomes = scan_service.run_scans(["a", "b", "c"], executor=executor, max_workers=3)

        assert [outcome["scan_request_id"] for outcome in outcomes] == ["a", "b", "c"]
        assert [outcome["success"] for outcome in outcomes] == [True, False, True]
        assert outcomes[1]["message"] == "chrome not reachable"
        assert executor.run.call_count == 3

    def test_device_override_passed_to_every_run(self):
        executor = Mock(spec=ScanExecutor)
        executor.run.side_effect = lambda scan_request_id, url_list, device_name: completed_message(scan_request_id)

        scan_service.run_scans(["a", "b"], device_name="iPad", executor=executor)

        assert {call.args[2] for call in executor.run.call_args_list} == {"iPad"}

    def test_empty_batch(self):
        assert scan_service.run_scans([]) == []


class TestEditScan:

    def test_updates_given_fields_only(self, db, make_scan_request):
        scan_request = make_scan_request(name="Old", guidance=["wcag2a"])

        changed = scan_service.edit_scan(db, scan_request.id, name="New", device="Laptop")

        assert changed is True
        db.expire_all()
        edited = db.get(type(scan_request), scan_request.id)
        assert edited.name == "New"
        assert edited.device == "Laptop"
        assert edited.guidance == ["wcag2a"]

    def test_reassigns_project_and_user(self, db, make_scan_request):
        scan_request = make_scan_request(project_id="proj-1", username="ada")

        assert scan_service.edit_scan(db, scan_request.id, project_id="proj-2", username="grace") is True

        db.expire_all()
        edited = db.get(type(scan_request), scan_request.id)
        assert (edited.project_id, edited.username, edited.name) == ("proj-2", "grace", scan_request.name)

    def test_no_changes(self, db, make_scan_request):
        scan_request = make_scan_request(name="Same")
        assert scan_service.edit_scan(db, scan_request.id, name="Same") is False

    def test_unknown_device(self, db, make_scan_request):
        scan_request = make_scan_request()
        with pytest.raises(DeviceConfigNotFoundError):
            scan_service.edit_scan(db, scan_request.id, device="Toaster")

    def test_unknown_scan_request(self, db):
        with pytest.raises(ScanRequestNotFoundError):
            scan_service.edit_scan(db, "missing", name="x")


class TestDeleteScans:

    def test_delete_cascades_to_results_and_schedule(self, db, make_scan_request):
        doomed = make_scan_request()
        kept = make_scan_request()
        save_scan_result(db, doomed.id, "https://example.com", axe_result(), 100, "Desktop")
        save_scan_result(db, kept.id, "https://example.com", axe_result(), 100, "Desktop")
        schedule_scan(db, doomed.id, datetime(2026, 1, 1, tzinfo=timezone.utc))

        deleted = scan_service.delete_scan(db, doomed.id)

        assert deleted == 1
        assert count(db, ScanResult) == 1
        assert count(db, ScanSchedule) == 0

    def test_delete_many(self, db, make_scan_request):
        ids = [make_scan_request().id for _ in range(3)]

        assert scan_service.delete_scans(db, ids[:2] + ["missing"]) == 2
        assert [scan_request.id for scan_request in scan_service.list_scan_requests(db)] == [ids[2]]


class TestReadBack:

    def test_list_filters_by_project_and_user(self, db, make_scan_request):
        mine = make_scan_request(project_id="p1", username="ada")
        make_scan_request(project_id="p1", username="bob")
        make_scan_request(project_id="p2", username="ada")

        found = scan_service.list_scan_requests(db, project_id="p1", username="ada")

        assert [scan_request.id for scan_request in found] == [mine.id]

    def test_get_score(self, db, make_scan_request):
        scan_request = make_scan_request()
        save_scan_result(db, scan_request.id, "https://example.com", axe_result(passes=1, violations=1), 50.0, "Desktop")

        score = scan_service.get_score(db, scan_request.id)

        assert score["status"] == "Incomplete"
        assert score["weighted_score"] is None
        assert score["pages"][0]["url"] == "https://example.com"
        assert score["pages"][0]["score"] == 50.0

    def test_get_urls(self, db, make_scan_request):
        scan_request = make_scan_request(urls=["https://example.com", "https://example.com/x"])
        assert scan_service.get_urls(db, scan_request.id) == ["https://example.com", "https://example.com/x"]

    def test_report_data_is_a_copy(self, db, make_scan_request):
        scan_request = make_scan_request(guidance=["wcag2a"])
        save_scan_result(db, scan_request.id, "https://example.com", axe_result(violations=1), 0, "Desktop")

        document, results = scan_service.get_report_data(db, scan_request.id)
        document["guidance"].append("tampered")
        results[0]["violations"].clear()

        db.expire_all()
        assert db.get(type(scan_request), scan_request.id).guidance == ["wcag2a"]
        assert len(scan_service.get_results(db, scan_request.id)[0].violations) == 1
