"""
Mastodon notification module.

Posts status updates to Mastodon social network.
"""

import logging
import os

from mastodon import Mastodon

from .messages import truncate

logger = logging.getLogger(__name__)

MASTODON_CHAR_LIMIT = 500


def is_configured():
    return bool(os.getenv('MASTODON_INSTANCE') and os.getenv('MASTODON_ACCESS_TOKEN'))


def post_to_mastodon(message):
    """
    Post a message to Mastodon.

    Requires environment variables:
    - MASTODON_INSTANCE: The instance URL (e.g., 'https://mastodon.social')
    - MASTODON_ACCESS_TOKEN: An access token for the account

    Args:
        message: Text to post (truncated to the instance limit)

    Returns:
        dict: {'success': bool, 'url': str or None, 'error': str or None}
    """
    instance = os.getenv('MASTODON_INSTANCE')
    access_token = os.getenv('MASTODON_ACCESS_TOKEN')

    if not instance or not access_token:
        return {
            'success': False,
            'url': None,
            'error': 'MASTODON_INSTANCE and MASTODON_ACCESS_TOKEN environment variables required'
        }

    try:
        client = Mastodon(access_token=access_token, api_base_url=instance)
        result = client.status_post(truncate(message, MASTODON_CHAR_LIMIT))
        logger.info(f"Posted to Mastodon: {result.get('url')}")
        return {
            'success': True,
            'url': result.get('url'),
            'error': None
        }
    except Exception as e:
        logger.error(f"Mastodon post failed: {e}")
        return {
            'success': False,
            'url': None,
            'error': str(e)
        }
