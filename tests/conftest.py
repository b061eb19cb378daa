import json
import os
import sys

import pytest

# Add project root to sys.path so tests can import top-level modules like 'ingest', 'normalize', 'report', etc.
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


class FakeTransport:
    """Stands in for ingest.transport.Transport: replays queued bodies and records every call."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def queue(self, payload):
        self.responses.append(payload)

    def send(self, method, url, auth, params=None, body=None):
        self.calls.append({'method': method, 'url': url, 'auth': auth, 'params': dict(params or {}), 'body': body})
        if not self.responses:
            raise AssertionError(f'unexpected request {method} {url}')
        payload = self.responses.pop(0)
        if isinstance(payload, Exception):
            raise payload
        if isinstance(payload, bytes):
            return payload
        return json.dumps(payload).encode('utf-8')

    def close(self):
        self.closed = True


@pytest.fixture
def fake_transport():
    return FakeTransport()
