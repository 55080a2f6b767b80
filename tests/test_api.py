"""
HTTP layer tests: the wager lifecycle through FastAPI's TestClient.
"""

import orjson
import pytest
from fastapi.testclient import TestClient

from app.main import create_app

OWNER = "0xf39fd6e51aad88f6f4ce6ab8827279cfffb92266"
PLAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

CENTI_ETHER = 10**16
TAILS_WORD = 7
HEADS_WORD = 4


def as_(address):
    return {"X-Caller-Address": address}


def ready_to_flip(client, address=PLAYER, side=2, amount=CENTI_ETHER):
    assert client.post("/api/deposit", json={"amount": amount}, headers=as_(address)).status_code == 200
    assert client.post("/api/pick", json={"side": side}, headers=as_(address)).status_code == 200


def flip(client, address=PLAYER):
    response = client.post("/api/flip", headers=as_(address))
    assert response.status_code == 200, response.text
    return response.json()["request_id"]


def land(client, request_id, word):
    response = client.post(f"/vrf/fulfill/{request_id}", json={"words": [word]})
    assert response.status_code == 200, response.text
    return response.json()


# ==================== Identity ====================

def test_missing_caller_header(client):
    response = client.post("/api/pick", json={"side": 1})
    assert response.status_code == 401


def test_malformed_caller(client):
    response = client.post("/api/pick", json={"side": 1}, headers=as_("alice"))
    assert response.status_code == 400


def test_owner_is_public(client):
    response = client.get("/api/owner")
    assert response.json() == {"owner": OWNER}


# ==================== Lifecycle ====================

def test_pick_invalid(client):
    response = client.post("/api/pick", json={"side": 3}, headers=as_(PLAYER))
    assert response.status_code == 400
    assert response.json() == {"error": "Must be tails or heads."}


def test_pick_rejects_boolean(client):
    response = client.post("/api/pick", json={"side": True}, headers=as_(PLAYER))
    assert response.status_code == 422
    pick = client.get(f"/admin/users/{PLAYER}/pick", headers=as_(OWNER))
    assert pick.json()["pick"] == 0


def test_deposit_too_high(client):
    response = client.post("/api/deposit", json={"amount": 10 * CENTI_ETHER}, headers=as_(PLAYER))
    assert response.status_code == 400
    assert response.json() == {"error": "Deposit is too high"}
    assert client.get("/api/pool").json() == {"pool_balance": 0}


def test_receive_counts_as_deposit(client):
    response = client.post("/api/receive", json={"amount": CENTI_ETHER}, headers=as_(PLAYER))
    assert response.status_code == 200
    balance = client.get(f"/admin/users/{PLAYER}/balance", headers=as_(OWNER))
    assert balance.json()["balance"] == CENTI_ETHER


def test_flip_without_pick(client):
    client.post("/api/deposit", json={"amount": CENTI_ETHER}, headers=as_(PLAYER))
    response = client.post("/api/flip", headers=as_(PLAYER))
    assert response.status_code == 400
    assert response.json()["error"] == "You have to pick a side first!"


def test_flip_without_deposit(client):
    client.post("/api/pick", json={"side": 2}, headers=as_(PLAYER))
    response = client.post("/api/flip", headers=as_(PLAYER))
    assert response.status_code == 400
    assert response.json()["error"] == "You have to deposit ETH first!"


def test_flip_in_progress(client):
    ready_to_flip(client)
    flip(client)
    response = client.post("/api/flip", headers=as_(PLAYER))
    assert response.status_code == 409
    assert response.json()["error"] == "Flip is in progress, coin didn't land yet!"


def test_landing_allows_another_flip(client):
    ready_to_flip(client)
    request_id = flip(client)
    assert client.get("/vrf/pending").json() == {"pending": [request_id]}

    client.post(f"/vrf/fulfill/{request_id}")

    pending = client.get(f"/admin/users/{PLAYER}/request", headers=as_(OWNER))
    assert pending.json()["request_id"] == 0
    result = client.get(f"/admin/users/{PLAYER}/result", headers=as_(OWNER)).json()
    assert result["result"] in (1, 2)
    assert flip(client) != request_id


def test_winning_withdrawal(client):
    ready_to_flip(client, OTHER, side=1, amount=5 * CENTI_ETHER)  # funds the pool
    ready_to_flip(client)
    land(client, flip(client), TAILS_WORD)

    response = client.post("/api/withdraw", headers=as_(PLAYER))

    assert response.status_code == 200
    body = response.json()
    assert body["amount"] == 19 * 10**15
    assert body["pool_balance"] == 6 * CENTI_ETHER - 19 * 10**15


def test_losing_withdrawal(client):
    ready_to_flip(client)
    land(client, flip(client), HEADS_WORD)

    response = client.post("/api/withdraw", headers=as_(PLAYER))
    assert response.status_code == 400
    assert response.json()["error"] == "You are not a winner"


def test_insufficient_pool_then_no_result(client):
    ready_to_flip(client)
    land(client, flip(client), TAILS_WORD)

    response = client.post("/api/withdraw", headers=as_(PLAYER))
    assert response.status_code == 400
    assert response.json()["error"] == "Not enough balance to withdraw. Please contact the owner."

    response = client.post("/api/withdraw", headers=as_(PLAYER))
    assert response.json()["error"] == "You have to play first!"


def test_withdraw_before_landing(client):
    ready_to_flip(client)
    flip(client)
    response = client.post("/api/withdraw", headers=as_(PLAYER))
    assert response.json()["error"] == "You have to play first!"


# ==================== Admin reads ====================

@pytest.mark.parametrize("field", ["balance", "request", "result", "pick"])
def test_admin_reads_require_owner(client, field):
    for address in (PLAYER, "not-an-address"):
        response = client.get(f"/admin/users/{address}/{field}", headers=as_(PLAYER))
        assert response.status_code == 403
        assert response.json() == {"error": "Only callable by owner"}


@pytest.mark.parametrize("field", ["balance", "request", "result", "pick"])
def test_admin_reads_validate_address_for_owner(client, field):
    response = client.get(f"/admin/users/not-an-address/{field}", headers=as_(OWNER))
    assert response.status_code == 400


def test_admin_reads_pick(client):
    client.post("/api/pick", json={"side": 2}, headers=as_(PLAYER))
    response = client.get(f"/admin/users/{PLAYER.lower()}/pick", headers=as_(OWNER.upper().replace("0X", "0x")))
    assert response.json() == {"address": PLAYER.lower(), "pick": 2, "name": "tails"}


# ==================== Coordinator ====================

def test_unfunded_coordinator_fails_flip(config):
    config.vrf.fund_amount = 0
    with TestClient(create_app(config)) as client:
        ready_to_flip(client)
        response = client.post("/api/flip", headers=as_(PLAYER))
        assert response.status_code == 503
        pending = client.get(f"/admin/users/{PLAYER}/request", headers=as_(OWNER))
        assert pending.json()["request_id"] == 0


def test_fulfill_unknown_request(client):
    response = client.post("/vrf/fulfill/42")
    assert response.status_code == 404


def test_override_with_wrong_word_count(client):
    ready_to_flip(client)
    request_id = flip(client)
    response = client.post(f"/vrf/fulfill/{request_id}", json={"words": [TAILS_WORD, HEADS_WORD]})
    assert response.status_code == 400
    assert client.get("/vrf/pending").json() == {"pending": [request_id]}


def test_word_override_needs_debug(config):
    config.server.debug = False
    with TestClient(create_app(config)) as client:
        ready_to_flip(client)
        request_id = flip(client)
        response = client.post(f"/vrf/fulfill/{request_id}", json={"words": [TAILS_WORD]})
        assert response.status_code == 403


def test_fund_subscription(client):
    before = client.get("/vrf/subscription").json()["balance"]
    response = client.post("/vrf/fund", json={"amount": 10**18})
    assert response.json()["balance"] == before + 10**18
    assert client.post("/vrf/fund", json={"amount": 0}).status_code == 400


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["pending_requests"] == 0


# ==================== Events ====================

def test_events_stream(client):
    ready_to_flip(client)
    with client.websocket_connect(f"/ws?address={PLAYER}") as websocket:
        websocket.send_text(orjson.dumps({"type": "ping"}).decode())
        assert orjson.loads(websocket.receive_bytes()) == {"type": "pong"}

    request_id = flip(client)
    land(client, request_id, TAILS_WORD)

    history = client.app.state.ws_manager.event_history
    assert history[-2] == {"type": "CoinFlipped", "request_id": request_id, "user": PLAYER.lower()}
    assert history[-1] == {"type": "CoinLanded", "request_id": request_id, "result": 2}


def test_event_history_replayed_on_connect(client):
    ready_to_flip(client)
    request_id = flip(client)
    with client.websocket_connect("/ws") as websocket:
        message = orjson.loads(websocket.receive_bytes())
    assert message["type"] == "event_history"
    assert message["events"][-1]["request_id"] == request_id


def test_closed_socket_is_forgotten(client):
    manager = client.app.state.ws_manager
    with client.websocket_connect(f"/ws?address={PLAYER}") as websocket:
        websocket.send_text(orjson.dumps({"type": "ping"}).decode())
        websocket.receive_bytes()
        assert manager.get_connection_count() == 1
    client.get("/health")
    assert manager.get_connection_count() == 0
