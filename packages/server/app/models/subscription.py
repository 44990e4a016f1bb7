"""Subscription model. Referenced by exactly one thread or chat ``subscriptions`` list."""

from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class Subscription(UUIDMixin, SQLModel, table=True):
    __tablename__ = "subscriptions"

    type: str = Field(nullable=False)  # thread | chat
    subscriber: str = Field(nullable=False, index=True)
