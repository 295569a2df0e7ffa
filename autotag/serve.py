"""
autotag HTTP API server.

A lightweight JSON endpoint for editors that request suggestions in the
background while a document is being written:

    POST /suggest   {"content": "..."}  ->  {"success": true, "data": [...]}
    GET  /health                        ->  {"status": "ok", "method": "builtin"}

Usage:
    autotag serve              # Start on default port 8000
    autotag serve --port 3000  # Custom port
"""

import json
import logging
from functools import partial
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import urlparse

from .auto_tag import suggestion_response
from .config import ExtractionConfig
from .constants import DEFAULT_SERVER_HOST, DEFAULT_SERVER_PORT
from .dispatcher import ExtractionDispatcher, create_default_dispatcher

logger = logging.getLogger(__name__)


class AutotagAPIHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the suggestion API."""

    def __init__(self, *args, config: ExtractionConfig, dispatcher: ExtractionDispatcher, **kwargs):
        self.config = config
        self.dispatcher = dispatcher
        super().__init__(*args, **kwargs)

    def send_json(self, data: Any, status: int = 200):
        """Send JSON response."""
        response = json.dumps(data, default=str)
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Access-Control-Allow-Origin', '*')
        self.send_header('Access-Control-Allow-Methods', 'GET, POST, OPTIONS')
        self.send_header('Access-Control-Allow-Headers', 'Content-Type')
        self.end_headers()
        self.wfile.write(response.encode())

    def send_error_json(self, message: str, status: int = 400):
        """Send JSON error response."""
        self.send_json({'success': False, 'error': message}, status)

    def do_OPTIONS(self):
        """Handle CORS preflight requests."""
        self.send_response(200)
        self.send_header('Access-Control-Allow-Origin', '*')
        self.send_header('Access-Control-Allow-Methods', 'GET, POST, OPTIONS')
        self.send_header('Access-Control-Allow-Headers', 'Content-Type')
        self.end_headers()

    def do_GET(self):
        path = urlparse(self.path).path

        if path == '/health':
            self.send_json({'status': 'ok', 'method': self.config.method.value})
        else:
            self.send_error_json('Not found', 404)

    def do_POST(self):
        path = urlparse(self.path).path

        try:
            content_length = int(self.headers.get('Content-Length', 0))
            body = self.rfile.read(content_length).decode('utf-8') if content_length > 0 else '{}'
            data = json.loads(body) if body else {}
        except (ValueError, UnicodeDecodeError):
            self.send_error_json('Invalid JSON', 400)
            return

        if not isinstance(data, dict):
            self.send_error_json('Expected a JSON object', 400)
            return

        if path == '/suggest':
            self.handle_suggest(data)
        else:
            self.send_error_json('Not found', 404)

    def handle_suggest(self, data: dict):
        content = data.get('content')
        if content is not None and not isinstance(content, str):
            self.send_error_json("'content' must be a string", 400)
            return

        # "no tags" is a normal outcome, reported with status 200
        self.send_json(suggestion_response(content or '', self.config, self.dispatcher))

    def log_message(self, format, *args):
        logger.info(f"{self.address_string()} - {format % args}")


def create_server(config: ExtractionConfig,
                  dispatcher: Optional[ExtractionDispatcher] = None,
                  host: str = DEFAULT_SERVER_HOST,
                  port: int = DEFAULT_SERVER_PORT) -> ThreadingHTTPServer:
    """Create (but do not start) the API server."""
    dispatcher = dispatcher or create_default_dispatcher()
    handler = partial(AutotagAPIHandler, config=config, dispatcher=dispatcher)
    return ThreadingHTTPServer((host, port), handler)


def run_server(config: ExtractionConfig,
               dispatcher: Optional[ExtractionDispatcher] = None,
               host: str = DEFAULT_SERVER_HOST,
               port: int = DEFAULT_SERVER_PORT):
    """
    Start the API server and block until interrupted.

    Args:
        config: Extraction settings used for every request
        dispatcher: Dispatcher to use (a default one if None)
        host: Host to bind to
        port: Port to listen on
    """
    server = create_server(config, dispatcher, host, port)

    print(f"autotag server running at http://{host}:{port}")
    print(f"Extraction method: {config.method.value}")
    print("Press Ctrl+C to stop")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        server.server_close()
