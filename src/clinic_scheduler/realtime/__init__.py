"""Real-time delivery: socket tokens, channels and the notification dispatcher."""

from clinic_scheduler.realtime.channels import ChannelRegistry, Connection
from clinic_scheduler.realtime.dispatcher import NotificationDispatcher, get_notification_dispatcher
from clinic_scheduler.realtime.tokens import EphemeralTokenStore, get_token_store

__all__ = [
    "ChannelRegistry",
    "Connection",
    "EphemeralTokenStore",
    "NotificationDispatcher",
    "get_notification_dispatcher",
    "get_token_store",
]
