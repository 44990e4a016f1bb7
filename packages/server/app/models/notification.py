"""Notification model (append-only history, read flag is the only mutable field)."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from .base import UUIDMixin, timestamp_field


class Notification(UUIDMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    noti_to: str = Field(nullable=False, index=True)  # recipient username
    noti_from: str = Field(nullable=False)  # actor username
    noti_source: str = Field(nullable=False)  # originating thread/chat id
    type: str = Field(nullable=False)  # message | answer | comment
    preview: str = Field(nullable=False)
    noti_date_time: datetime = timestamp_field()
    read: bool = Field(default=False, nullable=False)
