"""End-to-end checks through the FastAPI app: upload endpoint, static serving and the WebSocket channel."""


def _join(ws, name, color="#123456"):
    ws.send_json({"type": "join_chat", "name": name, "color": color})


def test_index_page_is_served(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]
    assert "/v1/ws" in r.text


def test_upload_round_trip(client):
    payload = b"\x89PNG\r\n\x1a\n" + bytes(range(256))
    r = client.post("/v1/upload", files={"file": ("photo.png", payload, "image/png")})
    assert r.status_code == 200

    body = r.json()
    assert body["file_name"].endswith(".png")
    assert body["file_name"] != "photo.png"
    assert body["url"] == f"/uploads/{body['file_name']}"

    r = client.get(body["url"])
    assert r.status_code == 200
    assert r.content == payload


def test_upload_requires_a_file(client):
    r = client.post("/v1/upload", data={"name": "photo.png"})
    assert r.status_code == 422


def test_upload_failure_is_a_500(client, monkeypatch):
    async def boom(upload, path):
        raise OSError("read-only file system")

    monkeypatch.setattr(client.app.state.storage, "_write_upload_to_path", boom)

    r = client.post("/v1/upload", files={"file": ("photo.png", b"data", "image/png")})
    assert r.status_code == 500


def test_missing_upload_is_404(client):
    assert client.get("/uploads/0.png").status_code == 404


def test_alice_and_bob_chat_then_bob_leaves(client):
    with client.websocket_connect("/v1/ws") as alice:
        a_id = alice.receive_json()["conn_id"]

        with client.websocket_connect("/v1/ws") as bob:
            greeting = bob.receive_json()
            b_id = greeting["conn_id"]
            assert greeting["type"] == "connected"
            assert b_id != a_id

            _join(alice, "Alice")
            for ws in (alice, bob):
                assert ws.receive_json() == {"type": "join_chat", "name": "Alice", "users": {a_id: "Alice"}}

            _join(bob, "Bob")
            for ws in (alice, bob):
                assert ws.receive_json() == {
                    "type": "join_chat",
                    "name": "Bob",
                    "users": {a_id: "Alice", b_id: "Bob"},
                }

            alice.send_json({"type": "chat_message", "user": "Alice", "message": "hi", "color": "#123456"})
            for ws in (alice, bob):
                msg = ws.receive_json()
                assert msg["type"] == "chat_message"
                assert (msg["user"], msg["message"], msg["color"]) == ("Alice", "hi", "#123456")

        assert alice.receive_json() == {"type": "leave_chat", "name": "Bob", "users": {a_id: "Alice"}}


def test_bad_events_get_an_error_and_keep_the_connection(client):
    with client.websocket_connect("/v1/ws") as ws:
        ws.receive_json()

        ws.send_text("not json")
        assert ws.receive_json()["code"] == "malformed_event"

        ws.send_json({"type": "dance"})
        assert ws.receive_json()["code"] == "malformed_event"

        ws.send_json({"type": "chat_message", "color": "#fff"})
        assert ws.receive_json()["code"] == "malformed_event"

        _join(ws, "   ")
        assert ws.receive_json()["code"] == "invalid_join"

        ws.send_json({"type": "chat_message", "user": "Alice", "message": "hi"})
        assert ws.receive_json()["code"] == "unknown_sender"

        _join(ws, "Alice")
        msg = ws.receive_json()
        assert (msg["type"], msg["name"]) == ("join_chat", "Alice")


def test_call_handshake_never_echoes_to_sender(client):
    with client.websocket_connect("/v1/ws") as alice, client.websocket_connect("/v1/ws") as bob:
        a_id = alice.receive_json()["conn_id"]
        b_id = bob.receive_json()["conn_id"]
        _join(alice, "Alice")
        alice.receive_json(), bob.receive_json()
        _join(bob, "Bob")
        alice.receive_json(), bob.receive_json()

        offer = {"type": "offer", "sdp": "v=0\r\n"}
        alice.send_json({"type": "start_call", "user": "Alice", "signal": offer})
        assert bob.receive_json() == {
            "type": "incoming_call",
            "user": "Alice",
            "signal": offer,
            "from_conn_id": a_id,
        }

        answer = {"type": "answer", "sdp": "v=0\r\n"}
        bob.send_json({"type": "accept_call", "user": "Bob", "signal": answer, "to": a_id})
        assert alice.receive_json() == {
            "type": "call_accepted",
            "user": "Bob",
            "signal": answer,
            "from_conn_id": b_id,
        }

        # nothing was queued for the senders of the signaling events
        bob.send_json({"type": "chat_message", "message": "ping"})
        assert alice.receive_json()["type"] == "chat_message"
        assert bob.receive_json()["type"] == "chat_message"


def test_announced_upload_reaches_the_room(client):
    r = client.post("/v1/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
    file_name = r.json()["file_name"]

    with client.websocket_connect("/v1/ws") as alice, client.websocket_connect("/v1/ws") as bob:
        alice.receive_json()
        bob.receive_json()
        _join(alice, "Alice")
        alice.receive_json(), bob.receive_json()

        alice.send_json({"type": "file_upload", "user": "Alice", "file_name": file_name})
        for ws in (alice, bob):
            assert ws.receive_json() == {
                "type": "file_upload",
                "user": "Alice",
                "file_name": file_name,
                "url": f"/uploads/{file_name}",
            }

        alice.send_json({"type": "file_upload", "file_name": "../etc/passwd"})
        assert alice.receive_json()["code"] == "unknown_file"


def test_binary_frame_is_rejected_and_the_connection_survives(client):
    with client.websocket_connect("/v1/ws") as ws:
        ws.receive_json()

        ws.send_bytes(b'{"type":"join_chat","name":"A"}')
        err = ws.receive_json()
        assert (err["type"], err["code"]) == ("error", "malformed_event")

        _join(ws, "A")
        msg = ws.receive_json()
        assert (msg["type"], msg["name"]) == ("join_chat", "A")
