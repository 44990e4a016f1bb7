"""Chat model."""

from typing import List

from sqlmodel import SQLModel

from .base import TimestampMixin, UUIDMixin, json_list_field


class Chat(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "chats"

    participants: List[str] = json_list_field()
    # Message ids as strings, oldest first
    messages: List[str] = json_list_field()
    # Subscription ids as strings, newest first
    subscriptions: List[str] = json_list_field()
