"""Tests for autotag.serve REST API."""

import json
import socket
import threading

import pytest
import requests
from unittest.mock import patch

from autotag.config import ExtractionConfig, ExtractionMethod
from autotag.dispatcher import create_default_dispatcher
from autotag.plugins import PluginMetadata, PluginPriority, TagExtractor
from autotag.serve import create_server


@pytest.fixture
def server_url():
    """Run a server on a free port for the duration of a test."""
    config = ExtractionConfig(method=ExtractionMethod.BUILTIN)
    server = create_server(config, create_default_dispatcher(), host="127.0.0.1", port=0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


@pytest.fixture
def http():
    session = requests.Session()
    # never route loopback requests through an environment proxy
    session.trust_env = False
    yield session
    session.close()


class TestSuggestEndpoint:
    """POST /suggest."""

    def test_returns_tags(self, server_url, http):
        response = http.post(f"{server_url}/suggest",
                             json={"content": "<p>coding coding sample</p>"}, timeout=5)
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": ["coding", "sample"]}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_empty_content(self, server_url, http):
        response = http.post(f"{server_url}/suggest", json={"content": "  "}, timeout=5)
        assert response.status_code == 200
        assert response.json() == {"success": False, "data": "Document content is empty."}

    def test_missing_content(self, server_url, http):
        response = http.post(f"{server_url}/suggest", json={}, timeout=5)
        assert response.json()["data"] == "Document content is empty."

    def test_no_tags(self, server_url, http):
        response = http.post(f"{server_url}/suggest", json={"content": "the it is a"}, timeout=5)
        assert response.status_code == 200
        assert response.json() == {"success": False, "data": "No suggested tags found."}

    def test_invalid_json(self, server_url, http):
        response = http.post(f"{server_url}/suggest", data="{not json",
                             headers={"Content-Type": "application/json"}, timeout=5)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid JSON"}

    def test_non_object_body(self, server_url, http):
        response = http.post(f"{server_url}/suggest", json=["content"], timeout=5)
        assert response.status_code == 400

    def test_non_string_content(self, server_url, http):
        response = http.post(f"{server_url}/suggest", json={"content": 42}, timeout=5)
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_unknown_path(self, server_url, http):
        response = http.post(f"{server_url}/other", json={"content": "x"}, timeout=5)
        assert response.status_code == 404


class TestOtherEndpoints:
    def test_health(self, server_url, http):
        response = http.get(f"{server_url}/health", timeout=5)
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "method": "builtin"}

    def test_get_unknown_path(self, server_url, http):
        response = http.get(f"{server_url}/suggest", timeout=5)
        assert response.status_code == 404

    def test_options_preflight(self, server_url, http):
        response = http.options(f"{server_url}/suggest", timeout=5)
        assert response.status_code == 200
        assert "POST" in response.headers["Access-Control-Allow-Methods"]


class TestRemoteServer:
    """A server configured for the remote method without a key."""

    def test_no_request_without_key(self, http):
        config = ExtractionConfig(method=ExtractionMethod.REMOTE)
        server = create_server(config, create_default_dispatcher(), host="127.0.0.1", port=0)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        host, port = server.server_address[:2]
        try:
            with patch('autotag.remote.CompletionClient.complete') as mock_complete:
                response = http.post(f"http://{host}:{port}/suggest",
                                     json={"content": "coding coding"}, timeout=5)
            assert response.json() == {"success": False, "data": "No suggested tags found."}
            mock_complete.assert_not_called()
        finally:
            server.shutdown()
            server.server_close()
            thread.join(timeout=5)


class TestMalformedRequests:
    """Bodies that cannot be decoded still get a JSON error."""

    def test_invalid_utf8_body(self, server_url, http):
        response = http.post(f"{server_url}/suggest", data=b'{"content": "\xff\xfe"}',
                             headers={"Content-Type": "application/json"}, timeout=5)
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid JSON"}

    def test_non_numeric_content_length(self, server_url):
        host, port = server_url[len("http://"):].split(":")
        request = (
            b"POST /suggest HTTP/1.0\r\n"
            b"Content-Type: application/json\r\n"
            b"Content-Length: abc\r\n"
            b"\r\n"
        )
        with socket.create_connection((host, int(port)), timeout=5) as sock:
            sock.sendall(request)
            raw = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                raw += chunk

        status_line, _, rest = raw.partition(b"\r\n")
        assert b" 400 " in status_line
        assert json.loads(rest.split(b"\r\n\r\n", 1)[1]) == {"success": False, "error": "Invalid JSON"}


class BlockingExtractor(TagExtractor):
    """Builtin-method extractor that waits until released."""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self._metadata = PluginMetadata(name="blocking", version="1.0.0",
                                        priority=PluginPriority.HIGHEST.value)

    @property
    def metadata(self):
        return self._metadata

    @property
    def method(self):
        return ExtractionMethod.BUILTIN

    def extract(self, content, config):
        self.started.set()
        self.release.wait(timeout=10)
        return ["slow"]


class TestConcurrentRequests:
    def test_health_answers_during_slow_extraction(self, http):
        extractor = BlockingExtractor()
        dispatcher = create_default_dispatcher()
        dispatcher.register(extractor)
        server = create_server(ExtractionConfig(), dispatcher, host="127.0.0.1", port=0)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        host, port = server.server_address[:2]
        base = f"http://{host}:{port}"

        results = {}

        def slow_request():
            with requests.Session() as session:
                session.trust_env = False
                results["suggest"] = session.post(f"{base}/suggest",
                                                  json={"content": "anything"}, timeout=15)

        worker = threading.Thread(target=slow_request)
        worker.start()
        try:
            assert extractor.started.wait(timeout=5)
            health = http.get(f"{base}/health", timeout=5)
            assert health.status_code == 200
        finally:
            extractor.release.set()
            worker.join(timeout=15)
            server.shutdown()
            server.server_close()
            thread.join(timeout=5)

        assert results["suggest"].json() == {"success": True, "data": ["slow"]}
