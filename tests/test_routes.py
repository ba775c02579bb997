import unittest

from fastapi.testclient import TestClient

from kavach.main import app
from kavach.services.report_service import get_report_service
from kavach.services.zone_aggregator import get_zone_aggregator

from factories import build_engine

REPORT_PAYLOAD = {
    "user_id": "user-1",
    "location": "Connaught Place",
    "latitude": 28.6139,
    "longitude": 77.2090,
    "incident_type": "harassment",
    "description": "Followed from the metro exit",
    "datetime": "2024-03-02T21:15:00Z",
    "anonymous": True,
}


class RouteTestCase(unittest.TestCase):

    def setUp(self):
        self.service, self.aggregator, self.zones, self.reports = build_engine()
        app.dependency_overrides[get_report_service] = lambda: self.service
        app.dependency_overrides[get_zone_aggregator] = lambda: self.aggregator
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestReportRoutes(RouteTestCase):

    def test_submit_and_fetch(self):
        response = self.client.post("/reports", json=REPORT_PAYLOAD)

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"], "pending")
        self.assertEqual(body["occurred_at"][:10], "2024-03-02")

        fetched = self.client.get(f"/reports/{body['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["location"], "Connaught Place")

    def test_latitude_without_longitude_rejected(self):
        payload = {k: v for k, v in REPORT_PAYLOAD.items() if k != "longitude"}

        response = self.client.post("/reports", json=payload)

        self.assertEqual(response.status_code, 422)

    def test_unknown_report_is_404_with_context(self):
        response = self.client.patch("/reports/missing/approve")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"detail": "Report not found", "context": {"report_id": "missing"}})

    def test_approve_creates_zone(self):
        report_id = self.client.post("/reports", json=REPORT_PAYLOAD).json()["id"]

        response = self.client.patch(f"/reports/{report_id}/approve")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "approved")
        zones = self.client.get("/zones").json()
        self.assertEqual(len(zones), 1)
        self.assertEqual(zones[0]["name"], "harassment Zone")
        self.assertEqual(zones[0]["report_count"], 1)
        self.assertEqual(zones[0]["risk_level"], "low")

    def test_invalid_transition_is_400(self):
        report_id = self.client.post("/reports", json=REPORT_PAYLOAD).json()["id"]
        self.client.patch(f"/reports/{report_id}/status", json={"status": "resolved"})

        response = self.client.patch(f"/reports/{report_id}/approve")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["context"]["to_status"], "approved")

    def test_list_by_user(self):
        self.client.post("/reports", json=REPORT_PAYLOAD)
        self.client.post("/reports", json={**REPORT_PAYLOAD, "user_id": "user-2"})

        response = self.client.get("/reports", params={"user_id": "user-2"})

        self.assertEqual([r["user_id"] for r in response.json()], ["user-2"])

    def test_delete(self):
        report_id = self.client.post("/reports", json=REPORT_PAYLOAD).json()["id"]

        self.assertEqual(self.client.delete(f"/reports/{report_id}").status_code, 204)
        self.assertEqual(self.client.get(f"/reports/{report_id}").status_code, 404)


class TestZoneRoutes(RouteTestCase):

    def test_create_zone(self):
        response = self.client.post("/zones", json={"name": "Underpass", "latitude": 28.6422, "longitude": 77.2195})

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["report_count"], 0)
        self.assertEqual(body["risk_level"], "low")
        self.assertEqual(body["radius"], 100)

    def test_derived_fields_cannot_be_supplied(self):
        response = self.client.post(
            "/zones",
            json={"name": "Underpass", "latitude": 28.6422, "longitude": 77.2195, "report_count": 40},
        )

        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.zones.list_all(), [])

    def test_listing_recomputes(self):
        zone_id = self.client.post(
            "/zones", json={"name": "Underpass", "latitude": 28.6139, "longitude": 77.2090}
        ).json()["id"]
        for _ in range(6):
            report_id = self.client.post("/reports", json={**REPORT_PAYLOAD, "latitude": 28.6149}).json()["id"]
            self.client.patch(f"/reports/{report_id}/approve")

        [zone] = self.client.get("/zones").json()

        self.assertEqual(zone["id"], zone_id)
        self.assertEqual(zone["report_count"], 6)
        self.assertEqual(zone["risk_level"], "medium")

    def test_delete_zone(self):
        zone_id = self.client.post(
            "/zones", json={"name": "Underpass", "latitude": 28.6139, "longitude": 77.2090}
        ).json()["id"]

        self.assertEqual(self.client.delete(f"/zones/{zone_id}").status_code, 204)
        self.assertEqual(self.client.delete(f"/zones/{zone_id}").status_code, 404)
        self.assertEqual(self.client.get("/zones").json(), [])


class TestHealthRoutes(unittest.TestCase):

    def test_health(self):
        client = TestClient(app)
        response = client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_store_health_uses_memory_backend(self):
        client = TestClient(app)
        response = client.get("/health/store")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["backend"], "memory")


if __name__ == '__main__':
    unittest.main()
