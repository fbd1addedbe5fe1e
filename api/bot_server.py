#!/usr/bin/env python3
"""
HTTP server for the metro status bot.

Endpoints:
    GET /        - Run one status check (called by Cloud Scheduler)
    GET /status  - Return the last cached status
    GET /health  - Health check

Usage:
    gunicorn 'api.bot_server:create_app()' --bind 0.0.0.0:8000
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import falcon

# Add parent directory to path for imports
API_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = API_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

from metrobot.bot import BotContext, read_cached_status, run_cycle  # noqa: E402
from metrobot.config import BotConfig  # noqa: E402

logger = logging.getLogger(__name__)


class CheckerResource:
    """HTTP endpoint that triggers a status check."""

    def __init__(self, ctx):
        self.ctx = ctx

    def on_get(self, req, resp):
        """Handle GET request from Cloud Scheduler."""
        try:
            result = run_cycle(self.ctx)
        except Exception as e:
            logger.exception("Unexpected error during status check")
            resp.status = falcon.HTTP_500
            resp.media = {
                'success': False,
                'error': str(e)
            }
            return

        # Feed and send failures are reported but are not server errors;
        # the next scheduled check retries them
        resp.status = falcon.HTTP_200
        resp.media = dict(result.to_dict(), success=result.success)


class StatusResource:
    """Serves the status cached by the most recent check."""

    def __init__(self, ctx):
        self.ctx = ctx

    def on_get(self, req, resp):
        cached = read_cached_status(self.ctx.store)
        if cached is None:
            resp.status = falcon.HTTP_503
            resp.media = {
                'error': 'Status unavailable',
                'details': 'No recent status check on record',
                'timestamp': datetime.now().isoformat()
            }
            return

        resp.status = falcon.HTTP_200
        resp.media = cached


class HealthResource:
    """Health check endpoint for Cloud Run."""

    def on_get(self, req, resp):
        resp.status = falcon.HTTP_200
        resp.media = {
            'status': 'ok',
            'service': 'metrobot',
            'timestamp': datetime.now().isoformat()
        }


def create_app(ctx=None):
    """Create the Falcon app. Builds the context from the environment if not given."""
    if ctx is None:
        logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO'))
        ctx = BotContext.from_config(BotConfig.from_env())

    app = falcon.App()
    app.add_route('/', CheckerResource(ctx))
    app.add_route('/status', StatusResource(ctx))
    app.add_route('/health', HealthResource())
    return app


if __name__ == '__main__':
    # For local testing
    from wsgiref.simple_server import make_server
    port = int(os.getenv('PORT', '8000'))
    with make_server('', port, create_app()) as httpd:
        print(f'Bot server listening on port {port}...')
        httpd.serve_forever()
