"""
Notification dispatcher module.

Sends a message to every configured channel.
"""

import logging

from . import bluesky, mastodon

logger = logging.getLogger(__name__)


def send_notification(message):
    """
    Post message to all configured channels.

    The send counts as successful when at least one configured channel
    accepted it. With no channel configured nothing is sent and the result
    is a failure.

    Returns:
        dict: {
            'success': bool,
            'channels': {'bluesky': {...}, 'mastodon': {...}},
            'error': str or None
        }
    """
    results = {}

    if bluesky.is_configured():
        results['bluesky'] = bluesky.post_to_bluesky(message)
    if mastodon.is_configured():
        results['mastodon'] = mastodon.post_to_mastodon(message)

    if not results:
        logger.error("No notification channels configured")
        return {
            'success': False,
            'channels': results,
            'error': 'No notification channels configured'
        }

    failed = {name: r['error'] for name, r in results.items() if not r['success']}
    for name, error in failed.items():
        logger.warning(f"Notification to {name} failed: {error}")

    success = len(failed) < len(results)
    return {
        'success': success,
        'channels': results,
        'error': None if success else '; '.join(f'{n}: {e}' for n, e in failed.items())
    }
