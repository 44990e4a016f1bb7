# SQLModel definitions, imported here to ensure metadata is populated.
from .base import TimestampMixin, UUIDMixin  # noqa: F401
from .notification import Notification  # noqa: F401
from .subscription import Subscription  # noqa: F401
from .thread import Thread  # noqa: F401
from .chat import Chat  # noqa: F401
from .message import Message  # noqa: F401
