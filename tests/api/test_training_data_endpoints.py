# This file tests the training-data rollup endpoints.
# It exists to confirm date grouping, source breakdown order, and upstream error mapping.
# The real service runs against a fake HTTP session.

from __future__ import annotations

from src.api.services.training_data_service import TrainingDataService
from src.sync.clients import TrainingDataWebhookClient
from tests.api.support import api_test_client
from tests.sync.fakes import FakeResponse, FakeSession, connection_error

S1_URL = "https://hooks.example.com/webhook/data_s1"
S2_URL = "https://hooks.example.com/webhook/s2_data"


def _service(session: FakeSession, *, s1_url: str = S1_URL) -> TrainingDataService:
    client = TrainingDataWebhookClient(s1_url=s1_url, s2_url=S2_URL, session=session)
    return TrainingDataService(client=client)


def test_s1_groups_by_input_date_with_sources_largest_first() -> None:
    session = FakeSession(
        [
            FakeResponse(
                [
                    {"Tanggal_Input_Data": "2025-01-02", "Nama_Training/Sumber_Data": "Webinar", "count_Tanggal_Input_Data": 2},
                    {"'Tanggal_Input_Data'": "2025-01-02", "'Nama_Training/Sumber_Data'": "Bootcamp", "count_Tanggal_Input_Data": 5},
                    {"Tanggal Input Data": "2025-01-03", "Nama Training/Sumber Data": "Webinar"},
                    {"Tanggal_Input_Data": "2025-01-02", "Nama_Training/Sumber_Data": "Webinar", "count_Tanggal_Input_Data": 0},
                    {"count_Tanggal_Input_Data": 4},
                ]
            )
        ]
    )
    with api_test_client(training_data_service=_service(session)) as client:
        response = client.get("/api/training-data/s1")

    assert response.status_code == 200
    payload = response.json()
    assert payload["dates"] == [
        {"label": "2025-01-02", "count": 8},
        {"label": "2025-01-03", "count": 1},
        {"label": "Unknown", "count": 4},
    ]
    first = payload["compositions"][0]
    assert first["breakdown"] == [{"label": "Bootcamp", "count": 5}, {"label": "Webinar", "count": 3}]
    assert payload["compositions"][2]["breakdown"] == [{"label": "Unknown", "count": 4}]
    assert session.requests[0]["url"] == S1_URL


def test_s2_sums_labels_across_entries() -> None:
    session = FakeSession([FakeResponse([{"2025-01-02": 3, "2025-01-03": "2"}, {"2025-01-02": "x", "2025-01-04": 1.5}])])
    with api_test_client(training_data_service=_service(session)) as client:
        response = client.get("/api/training-data/s2")

    assert response.status_code == 200
    assert response.json()["dates"] == [
        {"label": "2025-01-02", "count": 3},
        {"label": "2025-01-03", "count": 2},
        {"label": "2025-01-04", "count": 1.5},
    ]


def test_s2_accepts_single_object_payload() -> None:
    session = FakeSession([FakeResponse({"2025-01-02": 7})])
    with api_test_client(training_data_service=_service(session)) as client:
        response = client.get("/api/training-data/s2")

    assert response.json()["dates"] == [{"label": "2025-01-02", "count": 7}]


def test_webhook_error_status_maps_to_502() -> None:
    session = FakeSession([FakeResponse({"message": "boom"}, status_code=500)])
    with api_test_client(training_data_service=_service(session)) as client:
        response = client.get("/api/training-data/s1")

    assert response.status_code == 502
    assert response.json()["error_code"] == "UPSTREAM_ERROR"


def test_unreachable_webhook_maps_to_502() -> None:
    with api_test_client(training_data_service=_service(FakeSession([connection_error()]))) as client:
        response = client.get("/api/training-data/s2")

    assert response.status_code == 502


def test_unconfigured_webhook_maps_to_502_without_request() -> None:
    session = FakeSession([])
    with api_test_client(training_data_service=_service(session, s1_url="")) as client:
        response = client.get("/api/training-data/s1")

    assert response.status_code == 502
    assert "TRAINING_S1_WEBHOOK_URL" in response.json()["message"]
    assert session.requests == []
