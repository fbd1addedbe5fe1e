"""
Notification channels for metro status updates.

Provides a unified interface for publishing to multiple social networks:
- Bluesky
- Mastodon

Usage:
    from metrobot.notifiers import render_message, send_notification

    result = send_notification(render_message(decision, snapshot))
"""

from .dispatcher import send_notification
from .bluesky import post_to_bluesky
from .mastodon import post_to_mastodon
from .messages import render_message, render_broken_message, render_recovered_message

__all__ = [
    'send_notification',
    'post_to_bluesky',
    'post_to_mastodon',
    'render_message',
    'render_broken_message',
    'render_recovered_message',
]
