"""Tests for the HTTP API."""

import json
from uuid import uuid4

import httpx
from fastapi import status
from fastapi.testclient import TestClient

from nutriscan.api.app import create_app, error_status
from nutriscan.domain.errors import (
    EntryNotFoundError,
    MalformedResponseError,
    PersistenceError,
    ProviderUnavailableError,
    RetryableProviderError,
    ValidationError,
)
from tests.conftest import off_payload


def _status_error(status_code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://off.test")
    response = httpx.Response(status_code, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


def _client(container) -> TestClient:  # type: ignore[no-untyped-def]
    return TestClient(create_app(container))


def _product_payload(name: str = "Greek Yogurt", calories: float = 120) -> dict:
    return {
        "productType": "Food",
        "productName": name,
        "healthScore": 70,
        "calories": calories,
        "protein": 10,
        "carbohydrates": 8,
        "totalFat": 4,
    }


def test_health(container) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_barcode_hit(container, off_client) -> None:
    off_client.payloads["5000159484695"] = off_payload(
        product_name="Digestive Biscuits", nutriscore_grade="c"
    )

    response = _client(container).get(
        f"/users/{uuid4()}/products/barcode/5000159484695"
    )

    assert response.status_code == 200
    data = response.json()
    assert data["found"] is True
    assert data["product"]["productName"] == "Digestive Biscuits"
    assert data["product"]["healthScore"] == 60
    assert data["product"]["source"] == "barcode"


def test_barcode_miss_requests_photo(container) -> None:
    response = _client(container).get(f"/users/{uuid4()}/products/barcode/0000000")

    assert response.status_code == 200
    assert response.json() == {"found": False, "needs_image_capture": True}


def test_barcode_provider_outage_maps_to_503(container, off_client) -> None:
    off_client.errors.extend([_status_error(503), _status_error(503)])

    response = _client(container).get(f"/users/{uuid4()}/products/barcode/42")

    assert response.status_code == 503
    assert response.json()["message"] == ProviderUnavailableError.user_message


def test_barcode_non_json_reply_maps_to_502(container, off_client) -> None:
    off_client.errors.append(json.JSONDecodeError("Expecting value", "<html>", 0))

    response = _client(container).get(f"/users/{uuid4()}/products/barcode/42")

    assert response.status_code == 502
    assert response.json() == {
        "error": "MalformedResponseError",
        "message": MalformedResponseError.user_message,
    }


def test_image_analysis_uses_profile(
    container, vision_client, profile_repository
) -> None:
    user_id = uuid4()
    profile_repository.update_settings(user_id, {"diet": ["Vegan"]})

    response = _client(container).post(
        f"/users/{user_id}/products/image", content=b"\xff\xd8\xff-label"
    )

    assert response.status_code == 200
    assert response.json()["product"]["productName"] == "Masala Oats"
    assert "- Diet: Vegan" in vision_client.prompts[0]


def test_image_analysis_malformed_reply_maps_to_502(container, vision_client) -> None:
    vision_client.reply = "no json"

    response = _client(container).post(
        f"/users/{uuid4()}/products/image", content=b"label"
    )

    assert response.status_code == 502
    assert response.json()["error"] == "MalformedResponseError"


def test_empty_image_is_rejected(container) -> None:
    response = _client(container).post(f"/users/{uuid4()}/products/image", content=b"")

    assert response.status_code == 422


def test_log_edit_delete_undo_flow(container) -> None:
    client = _client(container)
    user_id = uuid4()

    created = client.post(
        f"/users/{user_id}/logs",
        json={"product": _product_payload(), "portions": 1.5, "notes": "breakfast"},
    )
    assert created.status_code == 201
    entry = created.json()
    assert entry["product"]["calories"] == 180

    edited = client.put(
        f"/users/{user_id}/logs/{entry['id']}", json={"portions": 2}
    )
    assert edited.status_code == 200
    assert edited.json()["product"]["calories"] == 240

    diary = client.get(f"/users/{user_id}/diary", params={"day": "2024-05-10"})
    assert diary.status_code == 200
    assert diary.json()["summary"]["total_calories"] == 240

    deleted = client.delete(f"/users/{user_id}/logs/{entry['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["deleted"] == entry["id"]

    restored = client.post(f"/users/{user_id}/logs/undo")
    assert restored.status_code == 200
    assert restored.json()["restored"] is True
    assert restored.json()["entry"]["id"] != entry["id"]

    again = client.post(f"/users/{user_id}/logs/undo")
    assert again.json() == {"restored": False}


def test_log_validation_errors(container) -> None:
    client = _client(container)
    user_id = uuid4()

    blank = client.post(
        f"/users/{user_id}/logs", json={"product": _product_payload(name=" ")}
    )
    missing = client.put(f"/users/{user_id}/logs/{uuid4()}", json={"portions": 1})

    assert blank.status_code == 422
    assert blank.json()["message"] == ValidationError.user_message
    assert missing.status_code == 404


def test_diary_view_shape(container) -> None:
    client = _client(container)
    user_id = uuid4()
    client.post(f"/users/{user_id}/logs", json={"product": _product_payload()})
    client.post(f"/users/{user_id}/logs", json={"product": _product_payload()})
    client.post(f"/users/{user_id}/water", json={"amount": 1.5})

    data = client.get(f"/users/{user_id}/diary").json()

    assert data["state"] == "ready"
    assert data["error"] is None
    assert data["day"] == "2024-05-10"
    lunch = data["meals"]["Lunch"]
    assert lunch["calories"] == 240
    assert lunch["groups"][0]["count"] == 2
    assert lunch["groups"][0]["delete_target"] == lunch["groups"][0]["ids"][-1]
    assert data["meals"]["Breakfast"] == {"calories": 0, "groups": []}
    assert data["summary"]["total_water"] == 1.5
    assert data["water_progress"] == 0.5
    assert data["insight"]["kind"] == "encouragement"


def test_diary_load_failure_returns_empty_ready_view(container, food_logs) -> None:
    food_logs.fail_reads = True

    response = _client(container).get(
        f"/users/{uuid4()}/diary", params={"day": "2024-05-10"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "ready"
    assert data["error"] == PersistenceError.user_message
    assert data["summary"]["total_calories"] == 0


def test_water_rejects_non_positive(container) -> None:
    response = _client(container).post(f"/users/{uuid4()}/water", json={"amount": 0})

    assert response.status_code == 422


def test_profile_metrics_and_timezone(container) -> None:
    client = _client(container)
    user_id = uuid4()

    metrics = client.put(
        f"/users/{user_id}/profile/metrics",
        json={"age": 30, "weight_kg": 80, "height_cm": 180, "gender": "male"},
    )
    timezone = client.put(
        f"/users/{user_id}/profile/timezone", json={"timezone": "Europe/Berlin"}
    )
    bad_timezone = client.put(
        f"/users/{user_id}/profile/timezone", json={"timezone": "Not/AZone"}
    )

    assert metrics.status_code == 200
    assert metrics.json()["limits"]["calories"] == 2136
    assert timezone.json() == {"timezone": "Europe/Berlin"}
    assert bad_timezone.status_code == 422


def test_error_status_mapping() -> None:
    assert error_status(ValidationError()) == status.HTTP_422_UNPROCESSABLE_CONTENT
    assert status.HTTP_422_UNPROCESSABLE_CONTENT == 422
    assert error_status(EntryNotFoundError()) == 404
    assert error_status(RetryableProviderError()) == 503
    assert error_status(ProviderUnavailableError()) == 503
    assert error_status(MalformedResponseError()) == 502
    assert error_status(PersistenceError()) == 500


def test_favorite_toggle_status_and_list(container) -> None:
    client = _client(container)
    user_id = uuid4()
    product = _product_payload(name="Oat Milk", calories=45)

    added = client.post(f"/users/{user_id}/favorites/toggle", json={"product": product})
    starred = client.get(
        f"/users/{user_id}/favorites/status", params={"product_name": "Oat Milk"}
    )
    listed = client.get(f"/users/{user_id}/favorites")
    removed = client.post(
        f"/users/{user_id}/favorites/toggle", json={"product": product}
    )

    assert added.json() == {"is_favorite": True}
    assert starred.json() == {"is_favorite": True}
    assert listed.json()["favorites"][0]["product_name"] == "Oat Milk"
    assert listed.json()["favorites"][0]["calories"] == 45
    assert removed.json() == {"is_favorite": False}


def test_favorite_blank_name_is_rejected(container) -> None:
    response = _client(container).get(
        f"/users/{uuid4()}/favorites/status", params={"product_name": "..."}
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"
