import asyncio

from tests.helpers import auth, receive_until, register
from walky.models.call import CallStatus
from walky.services.core.repositories import CallRepository

OFFER = {"type": "server-mediated"}


def _call(async_db, call_id):
    async def _get():
        async with async_db() as db:
            return await CallRepository(db).get_call(call_id)
    return asyncio.run(_get())


def test_initiate_answer_end(client, async_db):
    alice = register(client, "alice")
    bob = register(client, "bob")

    r = client.post("/api/calls/initiate", json={"targetUsername": "Bob", "offer": OFFER}, headers=auth(alice))
    assert r.status_code == 200
    body = r.json()
    assert body["targetId"] == bob["id"]
    assert body["status"] == "initiated"
    call_id = body["callId"]
    assert _call(async_db, call_id).status == CallStatus.PENDING

    r = client.post("/api/calls/answer", json={"callId": call_id, "answer": OFFER}, headers=auth(bob))
    assert r.status_code == 200
    assert r.json() == {"callId": call_id, "callerId": alice["id"], "status": "answered"}
    assert _call(async_db, call_id).status == CallStatus.CONNECTED

    r = client.post("/api/calls/end", json={"callId": call_id}, headers=auth(bob))
    assert r.status_code == 200
    assert r.json() == {"callId": call_id, "status": "ended"}
    assert _call(async_db, call_id) is None


def test_initiate_validation(client):
    alice = register(client, "alice")
    register(client, "bob")

    r = client.post("/api/calls/initiate", json={"targetUsername": "ghost", "offer": OFFER}, headers=auth(alice))
    assert r.status_code == 404
    assert r.json() == {"error": "User not found"}

    r = client.post("/api/calls/initiate", json={"targetUsername": "bob"}, headers=auth(alice))
    assert r.status_code == 400

    r = client.post("/api/calls/initiate", json={"offer": OFFER}, headers=auth(alice))
    assert r.status_code == 400

    bad = {"type": "answer", "sdp": "v=0"}
    r = client.post("/api/calls/initiate", json={"targetUsername": "bob", "offer": bad}, headers=auth(alice))
    assert r.status_code == 400

    sdp_offer = {"type": "offer", "sdp": "v=0"}
    r = client.post("/api/calls/initiate", json={"targetUsername": "bob", "offer": sdp_offer}, headers=auth(alice))
    assert r.status_code == 200

    r = client.post("/api/calls/initiate", json={"targetUsername": "alice", "offer": OFFER}, headers=auth(alice))
    assert r.status_code == 400


def test_answer_by_non_callee_is_404_and_status_unchanged(client, async_db):
    alice = register(client, "alice")
    register(client, "bob")
    mallory = register(client, "mallory")
    call_id = client.post(
        "/api/calls/initiate", json={"targetUsername": "bob", "offer": OFFER}, headers=auth(alice)
    ).json()["callId"]

    for intruder in (alice, mallory):
        r = client.post("/api/calls/answer", json={"callId": call_id, "answer": OFFER}, headers=auth(intruder))
        assert r.status_code == 404
    assert _call(async_db, call_id).status == CallStatus.PENDING


def test_end_unknown_or_foreign_call_is_404(client, async_db):
    alice = register(client, "alice")
    register(client, "bob")
    mallory = register(client, "mallory")

    r = client.post("/api/calls/end", json={"callId": "no-such-call"}, headers=auth(alice))
    assert r.status_code == 404
    assert r.json() == {"error": "Call not found"}

    call_id = client.post(
        "/api/calls/initiate", json={"targetUsername": "bob", "offer": OFFER}, headers=auth(alice)
    ).json()["callId"]
    assert client.post("/api/calls/end", json={"callId": call_id}, headers=auth(mallory)).status_code == 404
    assert _call(async_db, call_id) is not None

    assert client.post("/api/calls/end", json={"callId": call_id}, headers=auth(alice)).status_code == 200
    assert client.post("/api/calls/end", json={"callId": call_id}, headers=auth(alice)).status_code == 404


def test_retry_notifies_other_party_and_keeps_status(client, async_db):
    alice = register(client, "alice")
    bob = register(client, "bob")
    call_id = client.post(
        "/api/calls/initiate", json={"targetUsername": "bob", "offer": OFFER}, headers=auth(alice)
    ).json()["callId"]

    with client.websocket_connect("/ws") as bob_ws:
        bob_ws.send_json({"type": "register", "userId": bob["id"]})
        receive_until(bob_ws, "registered")

        r = client.post("/api/calls/retry", json={"callId": call_id, "offer": OFFER}, headers=auth(alice))
        assert r.status_code == 200
        assert r.json() == {"callId": call_id, "targetId": bob["id"], "status": "retry-sent"}

        retry = receive_until(bob_ws, "call-retry")
        assert retry == {
            "type": "call-retry",
            "callId": call_id,
            "caller": alice["id"],
            "callerUsername": "alice",
            "offer": OFFER,
        }
    assert _call(async_db, call_id).status == CallStatus.PENDING

    assert client.post("/api/calls/retry", json={"callId": "nope", "offer": OFFER}, headers=auth(alice)).status_code == 404


def test_audio_stream_toggle(client, async_db):
    alice = register(client, "alice")
    bob = register(client, "bob")
    call_id = client.post(
        "/api/calls/initiate", json={"targetUsername": "bob", "offer": OFFER}, headers=auth(alice)
    ).json()["callId"]

    with client.websocket_connect("/ws") as bob_ws:
        bob_ws.send_json({"type": "register", "userId": bob["id"]})
        receive_until(bob_ws, "registered")

        r = client.post("/api/calls/start-audio", json={"callId": call_id}, headers=auth(alice))
        assert r.json() == {"status": "audio-stream-started"}
        started = receive_until(bob_ws, "audio-stream-started")
        assert started == {"type": "audio-stream-started", "callId": call_id, "fromUserId": alice["id"]}
        assert _call(async_db, call_id).audio_stream_active is True

        r = client.post("/api/calls/stop-audio", json={"callId": call_id}, headers=auth(alice))
        assert r.json() == {"status": "audio-stream-stopped"}
        receive_until(bob_ws, "audio-stream-stopped")
        assert _call(async_db, call_id).audio_stream_active is False

    assert client.post("/api/calls/start-audio", json={"callId": "nope"}, headers=auth(alice)).status_code == 404
