"""Thread (question) model. Only the fields fan-out and subscriptions need."""

from datetime import datetime
from typing import List

from sqlmodel import Field, SQLModel

from .base import UUIDMixin, json_list_field, timestamp_field


class Thread(UUIDMixin, SQLModel, table=True):
    __tablename__ = "threads"

    title: str = Field(nullable=False)
    text: str = Field(default="", nullable=False)
    asked_by: str = Field(nullable=False)
    ask_date_time: datetime = timestamp_field()
    # Subscription ids as strings, newest first
    subscriptions: List[str] = json_list_field()
