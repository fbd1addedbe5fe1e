"""
Metro status bot.

Polls the HSL alert feed and posts to social networks when the metro breaks
down or recovers.
"""

__version__ = "1.0.0"
