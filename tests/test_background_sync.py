import logging

from conftest import JOIN_URL, PRIMARY_LIST_ID, make_client, make_settings


def test_background_mode_responds_and_still_syncs(stub, base_payload):
    client = make_client(make_settings(list_sync_mode="background"), stub)

    r = client.post("/register", json=base_payload)

    assert r.status_code == 200
    assert r.json()["join_url"] == JOIN_URL
    assert len(stub.calls_to(".api.mailchimp.com")) == 1


def test_background_list_failure_is_only_logged(stub, base_payload, caplog):
    stub.lists[PRIMARY_LIST_ID] = (500, "list down")
    client = make_client(make_settings(list_sync_mode="background"), stub)

    with caplog.at_level(logging.ERROR):
        r = client.post("/register", json=base_payload)

    assert r.status_code == 200
    assert r.json() == {"message": "Registration successful", "join_url": JOIN_URL}
    assert "Background list sync failed at mailchimp" in caplog.text


def test_background_mode_still_reports_registrant_failure(stub, base_payload):
    stub.registrant = (400, {"code": 300, "message": "Invalid email"})
    client = make_client(make_settings(list_sync_mode="background"), stub)

    r = client.post("/register", json=base_payload)

    assert r.status_code == 500
    assert r.json()["errorAt"] == "zoom"
    assert stub.calls_to(".api.mailchimp.com") == []
