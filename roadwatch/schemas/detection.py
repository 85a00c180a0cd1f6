"""
Pydantic schemas for canonical detection records.

``DetectionEvent`` is what the normalizer emits for tracking-style
submissions; ``BusImageEvent`` adds the captured image. Both serialize to
the flat camelCase documents persisted by the document store.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


EVENT_TYPES = {"entry", "exit", "continuous", "unknown"}


class DetectionEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field("unknown", alias="sessionId")
    device_id: str = Field("unknown", alias="deviceId")
    timestamp: str
    object_type: str = Field("unknown", alias="objectType")
    direction: str = "unknown"
    location: str = "0,0"
    gps_location: Optional[str] = Field(None, alias="gpsLocation")
    gps_latitude: Optional[float] = Field(None, alias="gpsLatitude")
    gps_longitude: Optional[float] = Field(None, alias="gpsLongitude")
    user_id: Optional[str] = Field(None, alias="userId")
    is_public: bool = Field(False, alias="isPublic")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class BusImageEvent(DetectionEvent):
    object_type: str = Field("bus", alias="objectType")
    image_data: str = Field(..., alias="imageData")
    event_type: str = Field("unknown", alias="eventType")


class LoginIn(BaseModel):
    email: Optional[str] = None
