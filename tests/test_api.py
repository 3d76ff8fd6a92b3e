"""
Tests for the HTTP API over a host backed by a temporary database.
"""
import pytest
from fastapi.testclient import TestClient

from poap_cvm import api as api_module
from poap_cvm.api import app
from poap_cvm.query.service import StoreProfileDirectory, new_profile


@pytest.fixture
def api_client(temp_db, monkeypatch):
    """Test client whose engine singleton opens ``temp_db``."""
    monkeypatch.setenv("POAP_DB", temp_db)
    api_module.set_engine(None)
    yield TestClient(app)
    engine = api_module.get_engine()
    engine.close()
    api_module.set_engine(None)


def _deploy_collection(client, minter="alice"):
    response = client.post(
        "/instantiate",
        json={
            "code_id": 1,
            "msg": {"name": "Collection", "symbol": "COL", "minter": minter},
            "sender": minter,
            "label": "collection",
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health(api_client):
    response = api_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "poap-cvm"}


def test_instantiate_execute_query(api_client):
    deployed = _deploy_collection(api_client)
    assert deployed["ok"] is True
    assert deployed["data"]["address"] == "contract0"

    minted = api_client.post(
        "/execute/contract0",
        json={
            "msg": {"mint": {"owner": "bob", "extension": {"claimer": "bob"}}},
            "sender": "alice",
        },
    )
    assert minted.status_code == 200, minted.text

    count = api_client.post("/query/contract0", json={"msg": {"num_tokens": {}}})
    assert count.json() == {"ok": True, "data": {"count": 1}}

    components = api_client.get("/components").json()
    assert components["count"] == 1
    assert components["components"][0]["label"] == "collection"
    assert components["components"][0]["version"]["contract"] == "poap-cvm:token-collection"


def test_contract_errors_are_400_with_kind(api_client):
    _deploy_collection(api_client)

    response = api_client.post(
        "/execute/contract0",
        json={
            "msg": {"mint": {"owner": "bob", "extension": {"claimer": "bob"}}},
            "sender": "mallory",
        },
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error_kind"] == "authorization_error"
    assert "mallory" in detail["error_message"]


def test_unknown_component_is_not_found(api_client):
    response = api_client.post("/query/contract9", json={"msg": {"num_tokens": {}}})
    assert response.status_code == 400
    assert response.json()["detail"]["error_kind"] == "not_found"


def test_events_are_listed(api_client):
    _deploy_collection(api_client)
    body = api_client.get("/events", params={"limit": 2}).json()
    assert body["count"] == 2
    assert body["events"][-1]["type"] == "instantiate"
    assert body["events"][-1]["op"] == "success"


def test_claim_uses_profiles_kept_in_the_host(api_client):
    engine = api_module.get_engine()
    StoreProfileDirectory(engine.store).add(new_profile("desmos1claimer", "claimer"))
    start = engine.vm.block().time

    poap_msg = {
        "admin": "admin",
        "minter": "admin",
        "collection_code_id": 1,
        "collection_instantiate_msg": {"name": "Event", "symbol": "EVT"},
        "event_info": {
            "creator": "creator",
            "start_time": start,
            "end_time": start + 100,
            "per_address_limit": 1,
            "poap_uri": "ipfs://event",
        },
    }
    deployed = api_client.post(
        "/instantiate",
        json={
            "code_id": 3,
            "msg": {"admin": "admin", "poap_code_id": 2, "poap_instantiate_msg": poap_msg},
            "sender": "admin",
        },
    )
    assert deployed.status_code == 200, deployed.text

    enabled = api_client.post("/execute/contract1", json={"msg": {"enable_mint": {}}, "sender": "admin"})
    assert enabled.status_code == 200, enabled.text

    claimed = api_client.post("/execute/contract0", json={"msg": {"claim": {}}, "sender": "desmos1claimer"})
    assert claimed.status_code == 200, claimed.text

    refused = api_client.post("/execute/contract0", json={"msg": {"claim": {}}, "sender": "desmos1nobody"})
    assert refused.status_code == 400
    assert refused.json()["detail"]["error_kind"] == "eligibility_error"

    owner = api_client.post("/query/contract2", json={"msg": {"owner_of": {"token_id": "1"}}})
    assert owner.json()["data"]["owner"] == "desmos1claimer"
