"""Pydantic schemas for album mappings and the inbound scan trigger."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AlbumRecord(BaseModel):
    """An album mapping as seen by the pipeline: row id merged with its fields."""

    id: str
    rfid: str
    artist: str
    album: str
    owner_id: str | None = None

    model_config = {"from_attributes": True}


class ScanPayload(BaseModel):
    """JSON form of a decoded trigger message (the bare-string form has no owner)."""

    rfid: str = ""
    user_id: str | None = Field(None, alias="userId")

    model_config = {"populate_by_name": True}


class PubSubMessage(BaseModel):
    data: str | None = None
    message_id: str | None = Field(None, alias="messageId")
    attributes: dict[str, str] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


class PubSubPushEnvelope(BaseModel):
    """Body of a Pub/Sub push delivery.

    A bare ``{"data": ...}`` body (the CloudEvent message form) is accepted too.
    """

    message: PubSubMessage | None = None
    subscription: str | None = None
    data: str | None = None

    @property
    def payload(self) -> str | None:
        if self.message is not None:
            return self.message.data
        return self.data
