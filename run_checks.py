"""Smoke check of the API against the in-memory store."""

import os

os.environ.setdefault("USE_MEMORY_STORE", "true")

from fastapi.testclient import TestClient  # noqa: E402
from kavach.main import app  # noqa: E402

with TestClient(app) as client:
    print('ROOT:')
    print(client.get('/').json())

    print('\nHEALTH:')
    print(client.get('/health').json())

    print('\nSTORE HEALTH:')
    resp = client.get('/health/store')
    print(resp.status_code, resp.json())

    print('\nAPPROVE FLOW:')
    report = client.post('/reports', json={
        "location": "Connaught Place",
        "latitude": 28.6139,
        "longitude": 77.2090,
        "incident_type": "harassment",
        "datetime": "2024-03-02T21:15:00Z",
    }).json()
    print(client.patch(f"/reports/{report['id']}/approve").json())

    print('\nZONES:')
    print(client.get('/zones').json())
