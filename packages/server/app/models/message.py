"""Message model (global board messages and direct chat messages)."""

from datetime import datetime
from typing import List

from sqlmodel import Field, SQLModel

from .base import UUIDMixin, json_list_field, timestamp_field


class Message(UUIDMixin, SQLModel, table=True):
    __tablename__ = "messages"

    msg: str = Field(nullable=False)
    msg_from: str = Field(nullable=False, index=True)
    msg_date_time: datetime = timestamp_field()
    read_by: List[str] = json_list_field()
    type: str = Field(default="global", nullable=False)  # global | direct
