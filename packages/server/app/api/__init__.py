"""
HTTP and WebSocket routes.

Route groups are mounted at the root, one prefix per resource:
/notification, /subscription, /messaging, /thread, /chat, /fanout, /ws.
"""

from fastapi import APIRouter

from . import chats, fanout, messaging, notifications, subscriptions, threads, ws

router = APIRouter()

router.include_router(notifications.router, prefix="/notification", tags=["Notifications"])
router.include_router(subscriptions.router, prefix="/subscription", tags=["Subscriptions"])
router.include_router(messaging.router, prefix="/messaging", tags=["Messaging"])
router.include_router(threads.router, prefix="/thread", tags=["Threads"])
router.include_router(chats.router, prefix="/chat", tags=["Chats"])
router.include_router(fanout.router, prefix="/fanout", tags=["Fan-out"])
router.include_router(ws.router)
