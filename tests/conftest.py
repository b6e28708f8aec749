# Shared pytest fixtures
from __future__ import annotations
import json
import tempfile
from pathlib import Path

import httpx
import pytest

from hubprop.config.loader import Settings
from hubprop.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("HUBSPOT_API_KEY", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """hubspot:
  base_url: https://hubspot.test
normalizer:
  exclude_default_properties: true
server:
  host: 0.0.0.0
  port: 9000
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "hubprop.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def property_csv() -> str:
    return (
        "Name,Internal name,Type,Description,Group name,Options,HubSpot defined,Usages,Display order\n"
        "Email,email,string,Primary email,contactinformation,,true,12,1\n"
        "Favorite color,favorite_color,enumeration,,,"
        "\"[{\"\"label\"\":\"\"Red\"\",\"\"value\"\":\"\"red\"\"},{\"\"label\"\":\"\"Blue\"\",\"\"value\"\":\"\"blue\"\"}]\","
        "false,0,2\n"
        "Newsletter,newsletter,bool,,marketing,,false,0,\n"
        ",,,,,,,,\n"
    )


@pytest.fixture()
def csv_file(temp_workdir: Path, property_csv: str) -> Path:
    f = temp_workdir / "data" / "properties.csv"
    f.write_text(property_csv, encoding="utf-8")
    return f


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_key="test-key")


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


class FakeHubSpot:
    """Records requests and answers them from a route table.

    routes: {(method, path): (status, body)}; body may be bytes for a
    non-JSON response or an Exception instance to raise a transport error.
    """

    def __init__(self, routes: dict[tuple[str, str], tuple[int, object]]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get((request.method, request.url.path), (404, {"message": "not found"}))
        if isinstance(body, Exception):
            raise body
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def last_json(self) -> object:
        return json.loads(self.requests[-1].content)


@pytest.fixture()
def fake_hubspot():
    return FakeHubSpot
