"""Itinerary import web server - parses pasted itinerary text into a schedule."""

import json
import logging
import os
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from agents.importer import handler as import_handler


logger = logging.getLogger(__name__)

# Largest request body accepted, in bytes
MAX_BODY_BYTES = 1_000_000

CORS_HEADERS = {
    "Access-Control-Allow-Origin": os.environ.get("CORS_ALLOW_ORIGIN", "*"),
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

ROUTES = {
    "/api/parse-itinerary": import_handler.parse_itinerary_handler,
    "/api/parse-itinerary-local": import_handler.parse_itinerary_local_handler,
}


class ImportHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the two itinerary parsing endpoints."""

    def do_OPTIONS(self):
        """Answer CORS preflight requests."""
        self.send_response(204)
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        self.end_headers()

    def do_POST(self):
        """Route POST requests to the matching parse handler."""
        path = self.path.split("?", 1)[0].rstrip("/")
        route = ROUTES.get(path)
        if route is None:
            self.send_json_error("Not Found", status=404)
            return

        data = self.read_json_body()
        if data is None:
            return

        body, status = route(data)
        self.send_json_response(body, status=status)

    def read_json_body(self):
        """Read and decode the JSON request body, answering 400/413 on bad input."""
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            content_length = 0

        if content_length < 0:
            self.send_json_error("Invalid Content-Length", status=400)
            return None

        if content_length > MAX_BODY_BYTES:
            self.send_json_error("Itinerary text is too long", status=413)
            return None

        raw = self.rfile.read(content_length) if content_length else b""
        try:
            return json.loads(raw.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            self.send_json_error("Please paste your itinerary text", status=400)
            return None

    def send_json_response(self, data: dict, status: int = 200):
        """Send JSON response."""
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(json.dumps(data).encode())

    def send_json_error(self, message: str, status: int = 400):
        """Send JSON error response."""
        self.send_json_response({"success": False, "error": message}, status=status)

    def log_message(self, format, *args):
        logger.info("[SERVER] %s - %s", self.address_string(), format % args)


def run_server(port: int = 8000):
    """Run the itinerary import server."""
    server = ThreadingHTTPServer(("0.0.0.0", port), ImportHandler)
    logger.info("[SERVER] Itinerary importer running at http://localhost:%d", port)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("[SERVER] Server stopped.")
        server.shutdown()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="Run the itinerary import server")
    parser.add_argument("-p", "--port", type=int, default=None, help="Port to run on (default: 8000)")
    args = parser.parse_args()

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Use PORT env var, then --port arg, then default 8000
    port = args.port or int(os.environ.get("PORT", 8000))
    run_server(port)
