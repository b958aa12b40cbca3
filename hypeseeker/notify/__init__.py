"""Digest channels and dispatch."""

from hypeseeker.notify.base import NotificationChannel, chunk_fragments
from hypeseeker.notify.dispatcher import (
    ChannelDispatchResult,
    DigestDispatcher,
    DispatchPhaseResult,
)
from hypeseeker.notify.slack import SlackChannel
from hypeseeker.notify.telegram import TelegramChannel


__all__ = [
    "ChannelDispatchResult",
    "DigestDispatcher",
    "DispatchPhaseResult",
    "NotificationChannel",
    "SlackChannel",
    "TelegramChannel",
    "chunk_fragments",
]
