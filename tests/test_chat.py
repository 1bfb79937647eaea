import logging

_log = logging.getLogger(__name__)


def test_three_clients_hello(chat_app, chat_client, wait_for_members):
    relay = chat_app.state.relay
    with chat_client.websocket_connect("/") as a, chat_client.websocket_connect(
        "/"
    ) as b, chat_client.websocket_connect("/") as c:
        wait_for_members(relay, 3)

        a.send_text("user1: hello")
        assert b.receive_text() == "user1: hello"
        assert c.receive_text() == "user1: hello"

        # A's next frame is C's message, so "hello" never came back to A
        c.send_text("user3: hi")
        assert a.receive_text() == "user3: hi"
        assert b.receive_text() == "user3: hi"


def test_disconnect_stops_delivery(chat_app, chat_client, wait_for_members):
    relay = chat_app.state.relay
    with chat_client.websocket_connect("/") as a, chat_client.websocket_connect(
        "/"
    ) as c:
        with chat_client.websocket_connect("/") as b:
            wait_for_members(relay, 3)
            a.send_text("m1")
            assert b.receive_text() == "m1"
            assert c.receive_text() == "m1"

        wait_for_members(relay, 2)
        a.send_text("m2")
        assert c.receive_text() == "m2"

    wait_for_members(relay, 0)


def test_same_sender_order(chat_app, chat_client, wait_for_members):
    relay = chat_app.state.relay
    with chat_client.websocket_connect("/") as a, chat_client.websocket_connect(
        "/"
    ) as b:
        wait_for_members(relay, 2)
        for i in range(20):
            a.send_text(f"line {i}")
        assert [b.receive_text() for _ in range(20)] == [f"line {i}" for i in range(20)]


def test_connection_count_is_logged(chat_app, chat_client, wait_for_members, caplog):
    caplog.set_level(logging.INFO)
    relay = chat_app.state.relay
    with chat_client.websocket_connect("/"):
        wait_for_members(relay, 1)
    wait_for_members(relay, 0)
    assert "Client connected. Total: 1" in caplog.text
    assert "Client disconnected. Total: 0" in caplog.text


def test_binary_frames_are_relayed(chat_app, chat_client, wait_for_members):
    relay = chat_app.state.relay
    with chat_client.websocket_connect("/") as a, chat_client.websocket_connect(
        "/"
    ) as b:
        wait_for_members(relay, 2)

        a.send_bytes(b"\x00hello\xff")
        assert b.receive_bytes() == b"\x00hello\xff"

        # the sender is still a member and can keep talking
        assert relay.registry.size == 2
        a.send_text("still here")
        assert b.receive_text() == "still here"
