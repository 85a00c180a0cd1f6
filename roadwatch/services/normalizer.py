"""
Normalization of raw mobile-client payloads into canonical records.

Field names changed from one app release to the next, so every canonical
field is read through a single ordered alias table. Timestamps and
locations are coerced to canonical strings, GPS values are parsed
tolerantly, and tracking-style submissions pass the duplicate suppressor
before they are classified into a destination collection.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from ..schemas.detection import EVENT_TYPES, BusImageEvent, DetectionEvent
from .classifier import Category, classify
from .dedup import DuplicateSuppressor, bus_image_key, event_key
from .location import normalize_location
from .timestamps import Clock, normalize_timestamp


logger = logging.getLogger("normalizer")

UNKNOWN = "unknown"

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "session_id": ("sessionId", "session_id"),
    "device_id": ("device_id", "vehicle_id", "deviceId"),
    "timestamp": ("timestamp", "event_time"),
    "object_type": ("objectType", "object_type", "vehicle_type"),
    "direction": ("direction",),
    "location": ("location",),
    "position_x": ("position_x", "exit_position_x"),
    "position_y": ("position_y", "exit_position_y"),
    "gps_location": ("gps_location", "gpsLocation"),
    "gps_latitude": ("gps_latitude", "gpsLatitude"),
    "gps_longitude": ("gps_longitude", "gpsLongitude"),
    "user_id": ("user_id", "userId"),
    "is_public": ("is_public", "isPublic"),
    "image_data": ("image_data", "imageData"),
    "event_type": ("event_type", "eventType"),
}

_MISSING_GPS_LOCATIONS = {"", "unknown,unknown"}


def extract_field(payload: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Return the first present, non-empty alias value for ``name``."""
    for key in FIELD_ALIASES[name]:
        value = payload.get(key)
        if value is None:
            continue
        if isinstance(value, str) and value == "":
            continue
        return value
    return default


def _text(value: Any, default: str = UNKNOWN) -> str:
    if value is None:
        return default
    text = str(value)
    return text if text else default


def parse_coordinate(value: Any) -> Optional[float]:
    """Parse a GPS coordinate. Absent or unusable values become None, never 0."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_public_flag(value: Any) -> bool:
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "true"


class Outcome(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"
    REJECTED = "rejected"


@dataclass
class NormalizeResult:
    outcome: Outcome
    event: Optional[DetectionEvent] = None
    category: Optional[Category] = None
    reason: Optional[str] = None
    fingerprint: Optional[str] = None
    # True when accepting this result recorded the fingerprint as seen
    recorded: bool = False

    @property
    def accepted(self) -> bool:
        return self.outcome is Outcome.ACCEPTED


@dataclass(frozen=True)
class IngestProfile:
    name: str
    require_gps_user: bool = False
    deduplicate: bool = True
    skip_bus: bool = False


LOGS_PROFILE = IngestProfile("logs", skip_bus=True)
TRACKING_PROFILE = IngestProfile("tracking", require_gps_user=True)
UPLOAD_IMAGE_PROFILE = IngestProfile("upload-image", deduplicate=False)


def _gps_user_missing(event: DetectionEvent) -> bool:
    return (
        (event.gps_location or "") in _MISSING_GPS_LOCATIONS
        or event.gps_latitude is None
        or event.gps_longitude is None
        or not event.user_id
    )


class EventNormalizer:
    def __init__(
        self,
        suppressor: DuplicateSuppressor,
        *,
        bucket_precision: str = "hour",
        now: Optional[Clock] = None,
    ) -> None:
        self.suppressor = suppressor
        self.bucket_precision = bucket_precision if bucket_precision in {"hour", "minute"} else "hour"
        self._now = now

    def _base_fields(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        gps_location = extract_field(payload, "gps_location")
        user_id = extract_field(payload, "user_id")
        latitude = parse_coordinate(extract_field(payload, "gps_latitude"))
        longitude = parse_coordinate(extract_field(payload, "gps_longitude"))
        if gps_location is None and latitude is not None and longitude is not None:
            gps_location = f"{latitude},{longitude}"
        return {
            "session_id": _text(extract_field(payload, "session_id")),
            "device_id": _text(extract_field(payload, "device_id")),
            "timestamp": normalize_timestamp(extract_field(payload, "timestamp"), now=self._now),
            "direction": _text(extract_field(payload, "direction")),
            "location": normalize_location(
                extract_field(payload, "location"),
                extract_field(payload, "position_x"),
                extract_field(payload, "position_y"),
            ),
            "gps_location": str(gps_location) if gps_location is not None else None,
            "gps_latitude": latitude,
            "gps_longitude": longitude,
            "user_id": str(user_id) if user_id is not None else None,
            "is_public": parse_public_flag(extract_field(payload, "is_public")),
        }

    def normalize(self, payload: Mapping[str, Any], profile: IngestProfile = LOGS_PROFILE) -> NormalizeResult:
        event = DetectionEvent(
            object_type=_text(extract_field(payload, "object_type")),
            **self._base_fields(payload),
        )

        if profile.skip_bus and event.object_type.lower() == "bus":
            return NormalizeResult(Outcome.SKIPPED, event=event, reason="bus logs are handled separately")

        if profile.require_gps_user and _gps_user_missing(event):
            return NormalizeResult(Outcome.SKIPPED, event=event, reason="missing GPS data or user ID")

        fingerprint = event_key(
            event.session_id,
            event.object_type,
            event.device_id,
            event.timestamp,
            precision=self.bucket_precision,
        )
        if profile.deduplicate and self.suppressor.is_duplicate(fingerprint):
            logger.debug("Duplicate %s event suppressed key=%s", profile.name, fingerprint)
            return NormalizeResult(Outcome.DUPLICATE, event=event, reason="duplicate", fingerprint=fingerprint)

        return NormalizeResult(
            Outcome.ACCEPTED,
            event=event,
            category=classify(event.object_type),
            fingerprint=fingerprint,
            recorded=profile.deduplicate,
        )

    def normalize_bus_image(self, payload: Mapping[str, Any]) -> NormalizeResult:
        fields = self._base_fields(payload)
        event_type = _text(extract_field(payload, "event_type")).lower()
        if event_type not in EVENT_TYPES:
            logger.debug("Unknown bus image event_type=%s; using unknown", event_type)
            event_type = UNKNOWN
        image_data = extract_field(payload, "image_data")

        gate_event = DetectionEvent(object_type="bus", **fields)
        if _gps_user_missing(gate_event):
            return NormalizeResult(Outcome.SKIPPED, event=gate_event, reason="missing GPS data or user ID")
        if not image_data:
            return NormalizeResult(Outcome.REJECTED, event=gate_event, reason="no image data provided")

        event = BusImageEvent(image_data=str(image_data), event_type=event_type, **fields)
        return NormalizeResult(
            Outcome.ACCEPTED,
            event=event,
            category=Category.BUS,
            fingerprint=bus_image_key(
                event.session_id,
                event.device_id,
                event.timestamp,
                precision=self.bucket_precision,
            ),
        )

    def companion_event(self, image_event: BusImageEvent) -> NormalizeResult:
        """Synthesize the bus tracking record that accompanies a stored image."""
        event = DetectionEvent(
            session_id=image_event.session_id,
            device_id=image_event.device_id,
            timestamp=image_event.timestamp,
            object_type="bus",
            direction="outbound" if image_event.event_type == "exit" else "inbound",
            location=image_event.location,
            gps_location=image_event.gps_location,
            gps_latitude=image_event.gps_latitude,
            gps_longitude=image_event.gps_longitude,
            user_id=image_event.user_id,
            is_public=image_event.is_public,
        )
        fingerprint = bus_image_key(
            event.session_id,
            event.device_id,
            event.timestamp,
            precision=self.bucket_precision,
        )
        if self.suppressor.is_duplicate(fingerprint):
            return NormalizeResult(Outcome.DUPLICATE, event=event, reason="duplicate", fingerprint=fingerprint)
        return NormalizeResult(
            Outcome.ACCEPTED, event=event, category=Category.BUS, fingerprint=fingerprint, recorded=True
        )

    def release(self, result: NormalizeResult) -> None:
        """Forget the fingerprint an accepted result recorded, so a resubmission is not suppressed."""
        if result.recorded and result.fingerprint:
            self.suppressor.forget(result.fingerprint)
