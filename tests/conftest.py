import json

import httpx
import pytest
from fastapi.testclient import TestClient

from webinar_signup.core.config import Settings
from webinar_signup.core.http_client import get_http_client_factory
from webinar_signup.main import create_app

JOIN_URL = "https://us02web.zoom.us/w/123?tk=abc"
PRIMARY_LIST_ID = "primary-list"
SECONDARY_LIST_ID = "secondary-list"


class ProviderStub:
    """Fake Zoom and Mailchimp APIs behind an httpx.MockTransport."""

    def __init__(self):
        self.requests = []
        self.token = (200, {"access_token": "tok-123", "expires_in": 3599})
        self.registrant = (201, {"registrant_id": "r-1", "join_url": JOIN_URL})
        self.lists = {
            PRIMARY_LIST_ID: (200, {"id": "member-1", "status": "subscribed"}),
            SECONDARY_LIST_ID: (200, {"id": "member-2", "status": "subscribed"}),
        }

    @staticmethod
    def build(status, body):
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host
        if host == "zoom.us":
            return self.build(*self.token)
        if host == "api.zoom.us":
            return self.build(*self.registrant)
        if host.endswith(".api.mailchimp.com"):
            list_id = request.url.path.split("/")[3]
            return self.build(*self.lists[list_id])
        return httpx.Response(404, text="unexpected host")

    def calls_to(self, host_suffix):
        return [r for r in self.requests if r.url.host.endswith(host_suffix)]

    def json_sent_to(self, host_suffix, index=0):
        return json.loads(self.calls_to(host_suffix)[index].content)


def make_settings(**overrides):
    values = dict(
        zoom_account_id="acct-1",
        zoom_client_id="cid",
        zoom_client_secret="secret",
        mailchimp_api_key="mc-key-us1",
        mailchimp_server_prefix="us1",
        mailchimp_list_id=PRIMARY_LIST_ID,
        mailchimp_secondary_list_id=SECONDARY_LIST_ID,
        registration_variant="base",
        list_sync_mode="await",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_client(settings, stub, raise_server_exceptions=True):
    app = create_app(settings)
    app.dependency_overrides[get_http_client_factory] = lambda: (
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(stub))
    )
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


@pytest.fixture(autouse=True)
def env_config_backend(monkeypatch):
    monkeypatch.setenv("CONFIG_BACKEND", "env")


@pytest.fixture
def stub():
    return ProviderStub()


@pytest.fixture
def client(stub):
    return make_client(make_settings(), stub)


@pytest.fixture
def extended_client(stub):
    return make_client(make_settings(registration_variant="extended"), stub)


@pytest.fixture
def base_payload():
    return {
        "firstName": "A",
        "lastName": "B",
        "email": "a@b.com",
        "company": "C",
        "jobTitle": "D",
        "eventId": "123",
        "identifier": "landing-page",
    }


@pytest.fixture
def extended_payload(base_payload):
    payload = dict(base_payload)
    payload.update({
        "city": "Austin",
        "state": "TX",
        "region": "United States",
        "zipCode": "78701",
        "phone": "+1 512 555 0100",
    })
    return payload
