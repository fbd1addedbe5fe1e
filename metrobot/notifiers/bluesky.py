"""
Bluesky notification module.

Posts status updates to Bluesky social network.
"""

import logging
import os

from atproto import Client

from .messages import truncate

logger = logging.getLogger(__name__)

BLUESKY_CHAR_LIMIT = 300


def is_configured():
    return bool(os.getenv('BLUESKY_HANDLE') and os.getenv('BLUESKY_APP_PASSWORD'))


def post_to_bluesky(message):
    """
    Post a message to Bluesky.

    Requires environment variables:
    - BLUESKY_HANDLE: The account handle (e.g., 'onkometrorikki.bsky.social')
    - BLUESKY_APP_PASSWORD: An app password for the account

    Returns:
        dict: {'success': bool, 'uri': str or None, 'error': str or None}
    """
    handle = os.getenv('BLUESKY_HANDLE')
    app_password = os.getenv('BLUESKY_APP_PASSWORD')

    if not handle or not app_password:
        return {
            'success': False,
            'uri': None,
            'error': 'BLUESKY_HANDLE and BLUESKY_APP_PASSWORD environment variables required'
        }

    try:
        client = Client()
        client.login(handle, app_password)
        post = client.send_post(text=truncate(message, BLUESKY_CHAR_LIMIT))
        logger.info(f"Posted to Bluesky: {post.uri}")
        return {
            'success': True,
            'uri': post.uri,
            'error': None
        }
    except Exception as e:
        logger.error(f"Bluesky post failed: {e}")
        return {
            'success': False,
            'uri': None,
            'error': str(e)
        }
