import json

import pytest
import requests

from iptv_sync import create_app, db
from iptv_sync.config import TestConfig


class FakeResponse:
    """The slice of `requests.Response` the clients read."""

    def __init__(self, status_code=200, content=b''):
        self.status_code = status_code
        self.content = content

    def json(self):
        return json.loads(self.content)


class FakeSession:
    """
    Stands in for `requests.Session`. Responses are routed by URL and, for
    Xtream calls, by the `action` query parameter.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add_text(self, url, text, status_code=200):
        body = text.encode('utf-8') if isinstance(text, str) else text
        self.routes[(url, None)] = FakeResponse(status_code, body)

    def add_json(self, url, data, action=None, status_code=200):
        self.routes[(url, action)] = FakeResponse(status_code, json.dumps(data).encode('utf-8'))

    def add_error(self, url, error, action=None):
        self.routes[(url, action)] = error

    def get(self, url, params=None, timeout=None, **kwargs):
        params = dict(params or {})
        self.calls.append((url, params, timeout))
        route = self.routes.get((url, params.get('action')))
        if route is None:
            raise requests.ConnectionError(f"No route for {url} action={params.get('action')}")
        if isinstance(route, Exception):
            raise route
        return route

    def actions(self):
        return [params.get('action') for _, params, _ in self.calls]


@pytest.fixture
def app():
    """App on an in-memory database with a fresh schema, scheduler off."""
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_http():
    return FakeSession()
