from types import MappingProxyType
from urllib.parse import unquote_plus

import pytest
import requests
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from tests.helpers import LOOKUP_SERVICE, RENDER_SERVICE, make_png


class FakeResponse:
    def __init__(self, status_code: int = 200, content: bytes = b""):
        self.status_code = status_code
        self.content = content
        self.text = content.decode("utf-8", "replace")

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeUpstream:
    """Plays both the name lookup service and the Sourire renderer."""

    def __init__(self):
        self.names = {}
        self.molecule = make_png()
        self.render_status = 200
        self.render_error = None
        self.lookup_error = None
        self.looked_up = []
        self.rendered = []
        self.urls = []
        self.verify = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        if url.startswith("http://lookup.test/"):
            if self.lookup_error is not None:
                raise self.lookup_error
            name = unquote_plus(url.split("/")[4])
            self.verify.append(kwargs.get("verify"))
            self.looked_up.append(name)
            status, body = self.names.get(name, (404, "Not Found"))
            return FakeResponse(status, body.encode("utf-8"))

        if self.render_error is not None:
            raise self.render_error
        self.rendered.append(unquote_plus(url.rsplit("/", 1)[1]))
        return FakeResponse(self.render_status, self.molecule)


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()
    monkeypatch.setattr(requests, "get", fake.get)
    return fake


@pytest.fixture
def settings():
    return Settings(
        chem_name_lookup_service=LOOKUP_SERVICE,
        molecule_render_service=RENDER_SERVICE,
        context=MappingProxyType({
            "site_title": "Test Molecules",
            "base_url": "",
            "example_name": "caffeine",
            "example_smiles": "CCO",
        }),
    )


@pytest.fixture
def client(settings, upstream):
    return TestClient(create_app(settings))
