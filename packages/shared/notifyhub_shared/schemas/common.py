from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

PREVIEW_LENGTH = 50
PREVIEW_ELLIPSIS = "..."


class NotificationType(str, Enum):
    MESSAGE = "message"
    ANSWER = "answer"
    COMMENT = "comment"


class SubscriptionType(str, Enum):
    THREAD = "thread"
    CHAT = "chat"


class ChatUpdateType(str, Enum):
    CREATED = "created"
    NEW_MESSAGE = "newMessage"
    NEW_PARTICIPANT = "newParticipant"
    NEW_VIEWER = "newViewer"


class PushEvent(str, Enum):
    """Event names multiplexed over the push channel."""
    NOTIFICATION_CREATE = "notificationCreate"
    NOTIFICATION_UPDATE = "notificationUpdate"
    MESSAGE_UPDATE = "messageUpdate"
    CHAT_UPDATE = "chatUpdate"


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase in JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def truncate_preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Cut ``text`` to ``limit`` characters, appending an ellipsis when cut."""
    if len(text) > limit:
        return f"{text[:limit]}{PREVIEW_ELLIPSIS}"
    return text
