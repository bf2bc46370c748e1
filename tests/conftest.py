"""
Pytest configuration and shared fixtures for maskpaint tests.

Provides in-memory stand-ins for the storage port and the HTTP session
used by the external service adapters, plus helpers for building
encoded test images.
"""

import io
import json

import pytest
from PIL import Image


class MemoryStorage:
    """Storage port that keeps blobs in a dict and hands out memory:// URLs."""

    def __init__(self):
        self.blobs = {}
        self.calls = []

    def put(self, data, content_type, *, prefix="upload"):
        url = f"memory://{prefix}/{len(self.blobs)}"
        self.blobs[url] = data
        self.calls.append((prefix, content_type, len(data)))
        return url

    def get(self, url):
        return self.blobs[url]


class FakeResponse:
    """Minimal subset of requests.Response used by the adapters."""

    def __init__(self, status_code=200, json_data=None, text=None, content=b"", headers=None):
        self.status_code = status_code
        self._json = json_data
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text
        self.content = content
        self.headers = headers or {}

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._json is None:
            raise ValueError("no JSON body")
        return self._json


class FakeHttp:
    """Records requests and replays a queued response (or raises an error)."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.posts = []
        self.gets = []

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def get(self, url, **kwargs):
        self.gets.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def encode_image(width, height, fmt="PNG", color=(200, 120, 40)):
    """Encode a solid-colour RGB image of the given size."""
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def memory_storage():
    """Provide a fresh in-memory storage port."""
    return MemoryStorage()


@pytest.fixture
def png_bytes():
    """Provide a small encoded PNG image (400x300)."""
    return encode_image(400, 300)
