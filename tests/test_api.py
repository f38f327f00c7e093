"""Tests for the HTTP API surface."""

from fastapi.testclient import TestClient

from lesion_screener.api.app import create_app
from lesion_screener.errors import BackendUnavailable
from tests.conftest import ManualBackend, make_png

ALL_ACKNOWLEDGED = {"terms": True, "privacy": True, "limitations": True}


def _consented_client(container) -> TestClient:  # type: ignore[no-untyped-def]
    client = TestClient(create_app(container))
    response = client.post("/session/consent", json=ALL_ACKNOWLEDGED)
    assert response.status_code == 200
    return client


def _upload(  # type: ignore[no-untyped-def]
    client: TestClient, body: bytes, content_type: str = "image/png"
):
    return client.post(
        "/session/acquire",
        params={"wait": "true"},
        content=body,
        headers={"Content-Type": content_type},
    )


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_session_starts_awaiting_consent(container) -> None:
    client = TestClient(create_app(container))

    data = client.get("/session").json()

    assert data["phase"] == "awaiting_consent"
    assert data["consent"] is None
    assert data["predictions"] == []


def test_declined_consent_keeps_session_locked(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/session/consent",
        json={"terms": True, "privacy": True, "limitations": False},
    )

    assert response.status_code == 200
    assert response.json()["phase"] == "awaiting_consent"


def test_full_flow_produces_results_and_report(container, backend) -> None:
    client = _consented_client(container)

    response = _upload(client, make_png())

    assert response.status_code == 200
    data = response.json()
    assert data["phase"] == "results"
    assert data["has_image"] is True
    assert data["has_aux_visual"] is False
    assert data["low_confidence"] is False
    assert [item["class_id"] for item in data["predictions"]] == ["nv", "mel", "bkl"]
    assert data["predictions"][0]["confidence"] == 0.79
    assert data["predictions"][0]["band"] == "medium"
    assert data["predictions"][0]["label"] == "Melanocytic Nevus (Mole)"
    assert len(backend.calls) == 1

    report = client.get("/session/report")

    assert report.status_code == 200
    assert report.headers["content-type"] == "application/pdf"
    assert report.headers["content-disposition"] == (
        'attachment; filename="lesion-report-20260102-030405.pdf"'
    )
    assert report.content.startswith(b"%PDF")

    reset = client.post("/session/reset")

    assert reset.status_code == 200
    assert reset.json()["phase"] == "ready"
    assert reset.json()["predictions"] == []
    assert reset.json()["has_image"] is False


def test_acquire_before_consent_conflicts(container) -> None:
    client = TestClient(create_app(container))

    response = _upload(client, make_png())

    assert response.status_code == 409
    assert response.json()["error"] == "illegal_transition"


def test_acquire_rejects_non_image_uploads(container) -> None:
    client = _consented_client(container)

    response = _upload(client, b"%PDF-1.4", content_type="application/pdf")

    assert response.status_code == 415
    assert client.get("/session").json()["phase"] == "ready"


def test_acquire_rejects_oversized_uploads(container) -> None:
    client = _consented_client(container)
    limit = container.settings.max_image_bytes

    response = _upload(client, b"\x89PNG" + b"\x00" * limit)

    assert response.status_code == 413
    assert client.get("/session").json()["phase"] == "ready"


def test_acquire_empty_body_is_invalid_image(container) -> None:
    client = _consented_client(container)

    response = _upload(client, b"")

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_image"
    data = client.get("/session").json()
    assert data["phase"] == "error"
    assert data["error"] == "invalid_image"


def test_backend_failure_surfaces_error_phase(container, backend) -> None:
    backend.error = BackendUnavailable("model server down")
    client = _consented_client(container)

    response = _upload(client, make_png())

    assert response.status_code == 200
    assert response.json()["phase"] == "error"
    assert response.json()["error"] == "backend_unavailable"
    assert client.post("/session/reset").json()["phase"] == "ready"


def test_report_outside_results_conflicts(container) -> None:
    client = _consented_client(container)

    response = client.get("/session/report")

    assert response.status_code == 409
    assert response.json()["error"] == "illegal_transition"


def test_acquire_without_wait_returns_analyzing(container) -> None:
    backend = ManualBackend()
    container.session_controller.backend = backend
    with TestClient(create_app(container)) as client:
        client.post("/session/consent", json=ALL_ACKNOWLEDGED)

        response = client.post(
            "/session/acquire",
            content=make_png(),
            headers={"Content-Type": "image/png"},
        )

        assert response.status_code == 200
        assert response.json()["phase"] == "analyzing"

        busy = client.post(
            "/session/acquire",
            content=make_png(),
            headers={"Content-Type": "image/png"},
        )
        assert busy.status_code == 409
        assert busy.json()["error"] == "session_busy"

        reset = client.post("/session/reset")
        assert reset.json()["phase"] == "ready"
