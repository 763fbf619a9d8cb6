"""Pydantic schemas for notifications, threads and mailbox pages."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clubhub.core.config import settings
from clubhub.core.sanitize import clean_multiline, clean_optional
from clubhub.models.enums import NotificationType, SendMode

MAX_LINK_LEN = 512


class NotificationSend(BaseModel):
    mode: SendMode = SendMode.individual
    type: NotificationType | None = None
    message: str = Field(..., max_length=settings.MESSAGE_MAX_LENGTH)
    link: str | None = Field(default=None, max_length=MAX_LINK_LEN)
    recipient_username: str | None = Field(default=None, max_length=64)
    club_name: str | None = Field(default=None, max_length=128)

    @field_validator("message", mode="before")
    @classmethod
    def normalize_message(cls, value: str | None) -> str:
        return clean_multiline(value)

    @field_validator("link", "recipient_username", "club_name", mode="before")
    @classmethod
    def normalize_optional(cls, value: str | None) -> str | None:
        return clean_optional(value)


class NotificationReply(BaseModel):
    message: str = Field(..., max_length=settings.MESSAGE_MAX_LENGTH)
    link: str | None = Field(default=None, max_length=MAX_LINK_LEN)

    @field_validator("message", mode="before")
    @classmethod
    def normalize_message(cls, value: str | None) -> str:
        return clean_multiline(value)

    @field_validator("link", mode="before")
    @classmethod
    def normalize_link(cls, value: str | None) -> str | None:
        return clean_optional(value)


class NotificationCreatedOut(BaseModel):
    id: int


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_username: str
    recipient_username: str | None = None
    club_name: str | None = None
    type: NotificationType
    message: str
    link: str | None = None
    created_at: dt.datetime
    reply_to: int | None = None
    is_read: bool
    is_mine: bool


class ThreadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    root: MessageOut
    replies: list[MessageOut] = Field(default_factory=list)
    is_sent: bool
    is_person_to_person: bool
    is_club_wide: bool
    is_report: bool
    has_replies: bool
    is_conversation: bool
    is_unread: bool
    has_received_messages: bool
    unread_count: int
    last_activity_at: dt.datetime | None = None


class MailboxPageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[ThreadOut]
    page: int
    pages: int
    total: int


class ReadStateOut(BaseModel):
    updated: int


class NotificationUnreadCountOut(BaseModel):
    count: int
