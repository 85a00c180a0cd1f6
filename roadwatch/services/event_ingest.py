"""
Event ingestion service for the Roadwatch backend.

Each entry point normalizes a raw mobile payload, drops soft skips
(duplicates, missing GPS/user data, bus logs routed elsewhere) and persists
accepted records through the document store. Storage failures are logged
and reported as a generic failure; nothing here retries.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..core.errors import StorageError, log_exception
from ..storage import BUS_IMAGES, DocumentStore
from .normalizer import (
    LOGS_PROFILE,
    TRACKING_PROFILE,
    UPLOAD_IMAGE_PROFILE,
    EventNormalizer,
    IngestProfile,
    NormalizeResult,
    Outcome,
)


logger = logging.getLogger("event_ingest")


@dataclass
class IngestResult:
    status: str
    message: str
    http_status: int = 200
    collection: Optional[str] = None
    session_id: Optional[str] = None
    record_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def body(self) -> Dict[str, Any]:
        if self.status == "error":
            return {"error": self.message}
        payload: Dict[str, Any] = {"status": self.status, "message": self.message}
        if self.collection:
            payload["collection"] = self.collection
        if self.session_id:
            payload["sessionId"] = self.session_id
        payload.update(self.extra)
        return payload


def _skipped(message: str, *, session_id: Optional[str] = None) -> IngestResult:
    return IngestResult(status="skipped", message=message, session_id=session_id)


def _failed(message: str, *, http_status: int = 500) -> IngestResult:
    return IngestResult(status="error", message=message, http_status=http_status)


def _log_received(kind: str, result: NormalizeResult) -> None:
    event = result.event
    if event is None:
        return
    logger.info(
        "Received %s session=%s device=%s timestamp=%s object_type=%s direction=%s gps=%s user=%s public=%s",
        kind,
        event.session_id,
        event.device_id,
        event.timestamp,
        event.object_type,
        event.direction,
        event.gps_location,
        event.user_id,
        event.is_public,
    )


def _persist(
    store: DocumentStore,
    normalizer: EventNormalizer,
    result: NormalizeResult,
    *,
    kind: str,
    success_message: str,
    failure_message: str,
) -> IngestResult:
    collection = result.category.collection
    try:
        record_id = store.insert(collection, result.event.to_document())
    except StorageError as exc:
        log_exception(
            logger,
            f"Error storing {kind}",
            extra={"collection": collection, "session": result.event.session_id},
            exc=exc,
        )
        normalizer.release(result)
        return _failed(failure_message)
    return IngestResult(
        status="stored",
        message=success_message.format(collection=collection),
        collection=collection,
        session_id=result.event.session_id,
        record_id=record_id,
    )


def ingest_log(
    store: DocumentStore,
    normalizer: EventNormalizer,
    payload: Mapping[str, Any],
    *,
    bus_policy: str = "separate",
) -> IngestResult:
    """Handle a detection posted to ``/logs``."""
    profile: IngestProfile = dataclasses.replace(LOGS_PROFILE, skip_bus=bus_policy != "merge")
    result = normalizer.normalize(payload, profile)
    if result.outcome is Outcome.SKIPPED:
        return _skipped("Bus logs are handled separately")
    if result.outcome is Outcome.DUPLICATE:
        return _skipped("Duplicate log detected, ignoring")
    _log_received("log", result)
    return _persist(
        store,
        normalizer,
        result,
        kind="log",
        success_message="Log stored successfully in {collection}",
        failure_message="Failed to store log",
    )


def ingest_tracking(store: DocumentStore, normalizer: EventNormalizer, payload: Mapping[str, Any]) -> IngestResult:
    """Handle a detection posted to ``/tracking``; GPS and user are required."""
    result = normalizer.normalize(payload, TRACKING_PROFILE)
    if result.outcome is Outcome.SKIPPED:
        return _skipped("Missing GPS data or user ID, skipping")
    if result.outcome is Outcome.DUPLICATE:
        return _skipped("Duplicate tracking data detected, ignoring")
    _log_received("tracking data", result)
    return _persist(
        store,
        normalizer,
        result,
        kind="tracking data",
        success_message="Tracking data stored successfully",
        failure_message="Failed to store tracking data",
    )


def ingest_uploaded_image(store: DocumentStore, normalizer: EventNormalizer, data: Optional[str]) -> IngestResult:
    """Handle the multipart ``/upload-image`` form; only its JSON ``data`` field is used."""
    try:
        payload = json.loads(data or "{}")
    except json.JSONDecodeError as exc:
        logger.warning("Invalid upload-image data field: %s", exc)
        payload = {}
    if not isinstance(payload, dict):
        logger.warning("Upload-image data field is not an object: %s", type(payload).__name__)
        payload = {}
    result = normalizer.normalize(payload, UPLOAD_IMAGE_PROFILE)
    _log_received("image upload", result)
    return _persist(
        store,
        normalizer,
        result,
        kind="image upload",
        success_message="Image data stored successfully",
        failure_message="Failed to process image upload",
    )


def ingest_bus_image(store: DocumentStore, normalizer: EventNormalizer, payload: Mapping[str, Any]) -> IngestResult:
    """
    Handle a captured bus image posted to ``/bus-image``.

    The image is stored unless an identical capture (same session, device
    and timestamp) already exists. A companion bus tracking record is then
    written unless the bus-image fingerprint was seen inside the window.
    """
    result = normalizer.normalize_bus_image(payload)
    if result.outcome is Outcome.SKIPPED:
        return _skipped("Missing GPS data or user ID, skipping")
    _log_received("bus image", result)
    if result.outcome is Outcome.REJECTED:
        return _failed("No image data provided", http_status=400)

    image = result.event
    logger.info("Bus image event_type=%s image_bytes=%s", image.event_type, len(image.image_data))
    try:
        if store.exists(
            BUS_IMAGES,
            {"sessionId": image.session_id, "deviceId": image.device_id, "timestamp": image.timestamp},
        ):
            return IngestResult(status="skipped", message="Bus image already exists", session_id=image.session_id)
        record_id = store.insert(BUS_IMAGES, image.to_document())
    except StorageError as exc:
        log_exception(logger, "Error storing bus image", extra={"session": image.session_id}, exc=exc)
        return _failed("Failed to store bus image")

    # The image is committed from here on; a tracking failure must not turn it into an error.
    companion = normalizer.companion_event(image)
    tracking_id = None
    if companion.accepted:
        try:
            tracking_id = store.insert(companion.category.collection, companion.event.to_document())
        except StorageError as exc:
            normalizer.release(companion)
            log_exception(
                logger,
                "Bus image stored but its tracking entry was not",
                extra={"session": image.session_id, "image_id": record_id, "key": companion.fingerprint},
                exc=exc,
            )
        else:
            logger.info(
                "Added tracking entry for bus device=%s event=%s direction=%s",
                image.device_id,
                image.event_type,
                companion.event.direction,
            )
    else:
        logger.debug("Bus tracking entry suppressed key=%s", companion.fingerprint)

    return IngestResult(
        status="stored",
        message="Bus image stored successfully",
        collection=BUS_IMAGES,
        session_id=image.session_id,
        record_id=record_id,
        extra={"eventType": image.event_type, "trackingStored": tracking_id is not None},
    )
