from datetime import datetime, timezone

from bikelane_sentinel.db.store import ViolationStore
from bikelane_sentinel.schemas.common import GeoLocation
from bikelane_sentinel.schemas.violation import Violation, ViolationStatus

CAMERA_IMAGE_URL = "https://webcams.nyctmc.org/api/cameras/{camera_id}/image"

# Demo records shown by the mobile UI before any real detection has run.
DEMO_VIOLATIONS = [
    {
        "id": "1",
        "camera_id": "07717cda-a5e0-4496-b051-2d0c9f6a873f",
        "vehicle_type": "SUV",
        "license_plate": "ABC1234",
        "location": (40.7128, -74.0060),
        "timestamp": datetime(2025, 6, 20, 15, 42, 30, tzinfo=timezone.utc),
        "status": ViolationStatus.REPORTED,
        "notes": "Vehicle parked in bike lane for approximately 25 minutes.",
    },
    {
        "id": "2",
        "camera_id": "d4bbce49-b087-4524-a835-08cb253926a7",
        "vehicle_type": "Taxi",
        "license_plate": "T505623C",
        "location": (40.7282, -73.9942),
        "timestamp": datetime(2025, 6, 21, 9, 15, 12, tzinfo=timezone.utc),
        "status": ViolationStatus.PENDING,
        "notes": None,
    },
    {
        "id": "3",
        "camera_id": "b8a456e2-d820-4494-9f5a-c5f0d7f9d20a",
        "vehicle_type": "Delivery Van",
        "license_plate": "XYZ9876",
        "location": (40.7328, -74.0027),
        "timestamp": datetime(2025, 6, 21, 11, 30, 45, tzinfo=timezone.utc),
        "status": ViolationStatus.REPORTED,
        "notes": "Repeated violation - 3rd time this week.",
    },
    {
        "id": "4",
        "camera_id": "07717cda-a5e0-4496-b051-2d0c9f6a873f",
        "vehicle_type": "Police Car",
        "license_plate": "NYPD2567",
        "location": (40.7193, -73.9879),
        "timestamp": datetime(2025, 6, 19, 16, 50, 22, tzinfo=timezone.utc),
        "status": ViolationStatus.UNDER_REVIEW,
        "notes": None,
    },
]


def seed_demo_violations(store: ViolationStore) -> int:
    """Inserts the demo violations that are not stored yet. Returns how many were added."""
    added = 0
    for record in DEMO_VIOLATIONS:
        if store.get(record["id"]) is not None:
            continue

        lat, lng = record["location"]
        store.add(Violation(
            id=record["id"],
            camera_id=record["camera_id"],
            image_url=CAMERA_IMAGE_URL.format(camera_id=record["camera_id"]),
            vehicle_type=record["vehicle_type"],
            license_plate=record["license_plate"],
            location=GeoLocation(lat=lat, lng=lng),
            timestamp=record["timestamp"],
            status=record["status"],
            confidence=0.85,
            notes=record["notes"],
        ))
        added += 1

    return added
