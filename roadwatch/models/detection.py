"""
ORM models for detection records.

Bus, vehicle and other detections share one column layout and live in
separate tables, one per category. Bus images carry the base64 payload and
the entry/exit event type in addition.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


class DetectionColumns:
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str | None] = mapped_column("sessionId", String(128), nullable=True, index=True)
    device_id: Mapped[str | None] = mapped_column("deviceId", String(128), nullable=True)
    timestamp: Mapped[str | None] = mapped_column(String(19), nullable=True, index=True)
    object_type: Mapped[str | None] = mapped_column("objectType", String(64), nullable=True)
    direction: Mapped[str | None] = mapped_column(String(64), nullable=True)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)
    gps_location: Mapped[str | None] = mapped_column("gpsLocation", String(128), nullable=True)
    gps_latitude: Mapped[float | None] = mapped_column("gpsLatitude", Float, nullable=True)
    gps_longitude: Mapped[float | None] = mapped_column("gpsLongitude", Float, nullable=True)
    user_id: Mapped[str | None] = mapped_column("userId", String(64), nullable=True, index=True)
    is_public: Mapped[bool] = mapped_column("isPublic", Boolean, default=False)


class BusLog(DetectionColumns, Base):
    __tablename__ = "buses"


class VehicleLog(DetectionColumns, Base):
    __tablename__ = "vehicles"


class OtherLog(DetectionColumns, Base):
    __tablename__ = "others"


class BusImage(DetectionColumns, Base):
    __tablename__ = "bus_images"

    image_data: Mapped[str | None] = mapped_column("imageData", Text, nullable=True)
    event_type: Mapped[str] = mapped_column("eventType", String(32), default="unknown")
