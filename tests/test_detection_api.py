import base64

import pytest
from fastapi.testclient import TestClient

from bikelane_sentinel.core.exceptions import InferenceError
from bikelane_sentinel.main import create_app
from bikelane_sentinel.services.inference import EXTENDED_QUESTION
from conftest import CAMERA_FRAME, JPEG_BYTES, make_settings, upload

DETECT_URL = "/api/detect-bike-lane-violations"


def test_missing_image(client, inference):
    response = client.post(DETECT_URL, data={"cameraId": "cam-bedford"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Image file is required."}
    assert inference.calls == []


def test_missing_body(client):
    response = client.post(DETECT_URL)
    assert response.status_code == 400
    assert response.json()["message"] == "Image file is required."


@pytest.mark.parametrize("content_type", ["text/plain", "image/webp", "application/pdf"])
def test_invalid_type_even_when_empty(client, inference, content_type):
    response = client.post(DETECT_URL, files=upload(b"", content_type, "notes.txt"))

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "JPEG, PNG, or GIF" in response.json()["message"]
    assert inference.calls == []


def test_oversize_image(client, settings, inference):
    too_big = b"\xff" * (settings.MAX_FILE_SIZE + 1)
    response = client.post(DETECT_URL, files=upload(too_big))

    assert response.status_code == 400
    assert response.json()["message"] == (
        "File size too large. Please upload an image smaller than 10MB."
    )
    assert inference.calls == []


def test_no_violation(client, inference, store):
    """Scenario A: a clean street is a successful response with nothing stored."""
    inference.answer = "no"
    response = client.post(DETECT_URL, files=upload())

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["hasCarsInBikeLane"] is False
    assert body["data"]["answer"] == "no"
    assert "timestamp" in body["data"]
    assert "violationId" not in body["data"]
    assert len(store) == 0

    image, question = inference.calls[0]
    assert image == JPEG_BYTES
    assert question == EXTENDED_QUESTION


def test_violation_is_recorded(client, inference):
    """Scenario B: a positive answer creates a Pending violation."""
    inference.answer = "Yes, Taxi"
    response = client.post(DETECT_URL, files=upload())

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["hasCarsInBikeLane"] is True
    assert data["vehicleType"] == "Taxi"
    assert "cameraId" not in data

    violations = client.get("/api/violations").json()["data"]
    assert len(violations) == 1
    violation = violations[0]
    assert violation["id"] == data["violationId"]
    assert violation["status"] == "Pending"
    assert violation["confidence"] == 0.85
    assert violation["cameraId"] == "user-submitted"
    assert violation["location"] == {"lat": 40.7128, "lng": -74.006}
    assert violation["imageUrl"] == (
        "data:image/jpeg;base64," + base64.b64encode(JPEG_BYTES).decode()
    )


def test_unknown_camera_degrades_to_upload(client, inference, store):
    """Scenario C: an unknown camera id is not an error."""
    inference.answer = "Yes"
    response = client.post(DETECT_URL, files=upload(), data={"cameraId": "no-such-camera"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["cameraId"] == "no-such-camera"
    assert data["vehicleType"] == "Unknown Vehicle"
    assert "location" not in data
    assert inference.calls[0][0] == JPEG_BYTES

    violation = store.get(data["violationId"])
    assert violation.camera_id == "no-such-camera"
    assert violation.image_url.startswith("data:image/jpeg;base64,")


def test_camera_frame_is_analyzed(client, inference, store):
    inference.answer = "YES, delivery van"
    response = client.post(DETECT_URL, files=upload(), data={"cameraId": "cam-bedford"})

    data = response.json()["data"]
    assert data["location"]["lat"] == pytest.approx(40.7198)
    assert inference.calls[0][0] == CAMERA_FRAME

    violation = store.get(data["violationId"])
    assert violation.vehicle_type == "delivery van"
    assert violation.image_url.startswith("http://cameras.test/api/cameras/cam-bedford/image?t=")
    assert "Bedford Ave at N 7th St" in violation.notes


def test_camera_upstream_down_still_succeeds(client, inference, upstream):
    upstream.catalog_status = 500
    upstream.image_status = 500
    inference.answer = "no"

    response = client.post(DETECT_URL, files=upload(), data={"cameraId": "cam-bedford"})

    assert response.status_code == 200
    assert inference.calls[0][0] == JPEG_BYTES


def test_inference_failure_is_500(client, inference, store):
    inference.error = InferenceError("Inference service unreachable: timed out")
    response = client.post(DETECT_URL, files=upload())

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Internal server error: Inference service unreachable: timed out",
    }
    assert len(store) == 0


def test_png_and_gif_are_accepted(client, inference):
    for content_type in ("image/png", "image/gif", "image/jpg"):
        response = client.post(DETECT_URL, files=upload(b"img", content_type, "x"))
        assert response.status_code == 200


def test_text_image_field_counts_as_missing(client, inference):
    response = client.post(DETECT_URL, data={"image": "not-a-file", "cameraId": "cam-bedford"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Image file is required."}
    assert inference.calls == []


def test_upload_content_type_reaches_inference(client, inference, store):
    inference.answer = "Yes, bus"
    response = client.post(DETECT_URL, files=upload(b"png-bytes", "image/png", "lane.png"))

    assert inference.content_types == ["image/png"]
    violation = store.get(response.json()["data"]["violationId"])
    assert violation.image_url.startswith("data:image/png;base64,")


def test_oversize_with_small_ceiling(http_client, inference):
    app = create_app(
        make_settings(MAX_FILE_SIZE=1024 * 1024),
        http_client=http_client,
        inference_client=inference,
    )
    with TestClient(app) as small_client:
        response = small_client.post(DETECT_URL, files=upload(b"\xff" * (1024 * 1024 + 10)))

    assert response.status_code == 400
    assert response.json()["message"] == (
        "File size too large. Please upload an image smaller than 1MB."
    )
    assert inference.calls == []
