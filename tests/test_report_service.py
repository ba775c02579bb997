import unittest
from concurrent.futures import ThreadPoolExecutor

from kavach.core.errors import ConcurrencyConflict, InvalidInput, NotFound
from kavach.models.report import ReportStatus, StatusUpdateRequest
from kavach.models.zone import RiskLevel

from factories import GatedReportStore, SlowZoneStore, build_engine, report_data, zone_data


class TestReportLifecycle(unittest.TestCase):

    def setUp(self):
        self.service, self.aggregator, self.zones, self.reports = build_engine()

    def test_new_report_is_pending(self):
        report = self.service.create_report(report_data(28.6139, 77.2090))

        self.assertEqual(report.status, ReportStatus.PENDING)
        self.assertEqual(report.status_history[0]["to"], "pending")
        self.assertEqual(self.zones.list_all(), [])

    def test_get_unknown_report(self):
        with self.assertRaises(NotFound):
            self.service.get_report("missing")

    def test_list_reports_by_user_newest_first(self):
        first = self.service.create_report(report_data(user_id="u1"))
        self.service.create_report(report_data(user_id="u2"))
        second = self.service.create_report(report_data(user_id="u1", anonymous=True))

        mine = self.service.list_reports(user_id="u1")

        self.assertEqual([r.id for r in mine], [second.id, first.id])
        self.assertTrue(mine[0].anonymous)
        self.assertEqual(len(self.service.list_reports()), 3)

    def test_resolve_then_approve_rejected(self):
        report = self.service.create_report(report_data(28.6139, 77.2090))
        self.service.update_status(report.id, StatusUpdateRequest(status="resolved", changed_by="admin"))

        with self.assertRaises(InvalidInput):
            self.service.approve_report(report.id)
        self.assertEqual(self.zones.list_all(), [])

    def test_delete_report(self):
        report = self.service.create_report(report_data())
        self.service.delete_report(report.id)
        with self.assertRaises(NotFound):
            self.service.delete_report(report.id)


class TestApproveReport(unittest.TestCase):

    def setUp(self):
        self.service, self.aggregator, self.zones, self.reports = build_engine()

    def test_unknown_report(self):
        with self.assertRaises(NotFound):
            self.service.approve_report("missing")

    def test_approval_opens_zone_named_after_incident_type(self):
        report = self.service.create_report(report_data(28.7000, 77.3000, incident_type="stalking"))

        approved = self.service.approve_report(report.id)

        self.assertEqual(approved.status, ReportStatus.APPROVED)
        [zone] = self.zones.list_all()
        self.assertEqual(zone.name, "stalking Zone")
        self.assertEqual((zone.latitude, zone.longitude), (28.7, 77.3))
        self.assertEqual(zone.report_count, 1)
        self.assertEqual(zone.risk_level, RiskLevel.LOW)

    def test_approval_merges_into_nearby_zone(self):
        existing = self.aggregator.create_zone(zone_data(latitude=28.6140, longitude=77.2091))
        report = self.service.create_report(report_data(28.6139, 77.2090))

        self.service.approve_report(report.id)

        [zone] = self.zones.list_all()
        self.assertEqual(zone.id, existing.id)
        self.assertEqual(zone.report_count, 1)

    def test_approval_without_coordinates_touches_no_zone(self):
        existing = self.aggregator.create_zone(zone_data())
        before = self.zones.list_all()
        report = self.service.create_report(report_data())

        approved = self.service.approve_report(report.id)

        self.assertEqual(approved.status, ReportStatus.APPROVED)
        self.assertEqual(self.zones.list_all(), before)
        self.assertEqual(self.zones.get_by_id(existing.id).report_count, 0)

    def test_reapproval_does_not_double_count(self):
        report = self.service.create_report(report_data(28.6139, 77.2090))
        self.service.approve_report(report.id)
        self.service.approve_report(report.id)

        [zone] = self.zones.list_all()
        self.assertEqual(zone.report_count, 1)

    def test_status_update_to_approved_triggers_aggregation(self):
        report = self.service.create_report(report_data(28.6139, 77.2090))

        updated = self.service.update_status(
            report.id, StatusUpdateRequest(status="approved", changed_by="moderator-7", note="verified")
        )

        self.assertEqual(updated.status, ReportStatus.APPROVED)
        self.assertEqual(updated.status_history[-1]["changed_by"], "moderator-7")
        self.assertEqual(len(self.zones.list_all()), 1)

    def test_approved_then_listed_matches_recompute(self):
        for lat, lng in ((28.6139, 77.2090), (28.6140, 77.2091), (28.6180, 77.2090)):
            report = self.service.create_report(report_data(lat, lng))
            self.service.approve_report(report.id)

        # the third report merged (0.0041 < 0.005); recompute agrees
        [zone] = self.aggregator.list_zones()
        self.assertEqual(zone.report_count, 3)


class TestConcurrentApproval(unittest.TestCase):

    def test_no_lost_updates(self):
        zone_store = SlowZoneStore()
        service, aggregator, zones, _ = build_engine(zone_store=zone_store)
        existing = aggregator.create_zone(zone_data(latitude=28.6140, longitude=77.2091))
        n = 24
        reports = [service.create_report(report_data(28.6139, 77.2090)) for _ in range(n)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda r: service.approve_report(r.id), reports))

        self.assertTrue(all(r.status == ReportStatus.APPROVED for r in results))
        [zone] = zones.list_all()
        self.assertEqual(zone.id, existing.id)
        self.assertEqual(zone.report_count, n)
        self.assertEqual(zone.risk_level, RiskLevel.HIGH)
        # writers were serialised per zone
        self.assertEqual(zone_store.max_in_flight, 1)

    def test_same_report_approved_from_two_threads_counts_once(self):
        report_store = GatedReportStore(parties=2)
        service, aggregator, zones, _ = build_engine(report_store=report_store)
        existing = aggregator.create_zone(zone_data(latitude=28.6140, longitude=77.2091))
        report = service.create_report(report_data(28.6139, 77.2090))
        report_store.close_gate()

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(lambda _: service.approve_report(report.id), range(2)))

        self.assertEqual([r.status for r in results], [ReportStatus.APPROVED] * 2)
        self.assertEqual(zones.get_by_id(existing.id).report_count, 1)
        history = report_store.get_by_id(report.id).status_history
        self.assertEqual([entry["to"] for entry in history], ["pending", "approved"])

    def test_resolve_racing_approval_does_not_aggregate(self):
        report_store = GatedReportStore(parties=2)
        service, aggregator, zones, _ = build_engine(report_store=report_store)
        existing = aggregator.create_zone(zone_data(latitude=28.6140, longitude=77.2091))
        report = service.create_report(report_data(28.6139, 77.2090))
        report_store.close_gate()

        def approve():
            return service.approve_report(report.id)

        def resolve():
            return service.update_status(report.id, StatusUpdateRequest(status="resolved"))

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(approve), pool.submit(resolve)]
            outcomes = []
            for future in futures:
                try:
                    outcomes.append(future.result().status)
                except ConcurrencyConflict:
                    outcomes.append("conflict")

        final = report_store.get_by_id(report.id).status
        self.assertEqual(outcomes.count("conflict"), 1)
        expected_count = 1 if final == ReportStatus.APPROVED else 0
        self.assertEqual(zones.get_by_id(existing.id).report_count, expected_count)


if __name__ == '__main__':
    unittest.main()
