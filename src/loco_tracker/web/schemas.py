"""Pydantic request/response schemas for the Web API."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

from loco_tracker.telemetry.models import HistoryRecord, Snapshot, TelemetryPoint


class TrackRequest(BaseModel):
    loco_id: str = Field(
        default="",
        validation_alias=AliasChoices("locoId", "assetId", "loco_id"),
    )


class HealthResponse(BaseModel):
    status: str
    version: str


class ErrorResponse(BaseModel):
    error: str


class TrackingData(BaseModel):
    lat: float
    lng: float
    station: str
    event: str
    speed: str

    @classmethod
    def from_point(cls, point: TelemetryPoint) -> TrackingData:
        return cls(**point.to_dict())


class HistoryPoint(TrackingData):
    timestamp: str

    @classmethod
    def from_record(cls, record: HistoryRecord) -> HistoryPoint:
        return cls(**record.to_dict())


class TrackResponse(BaseModel):
    current: TrackingData
    history: list[HistoryPoint]

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> TrackResponse:
        return cls(
            current=TrackingData.from_point(snapshot.current),
            history=[HistoryPoint.from_record(r) for r in snapshot.history],
        )
