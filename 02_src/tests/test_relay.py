"""Tests for Relay protocol."""

import asyncio

import pytest

from chatroom.errors import PayloadError
from chatroom.models import EventName, Participant, RelayEvent


def events(conn) -> list[str]:
    return [e.event for e in conn.pending()]


def join(relay, conn, user_id: str, name: str, avatar: str | None = None):
    data = {"userId": user_id, "userName": name}
    if avatar:
        data["userAvatar"] = avatar
    relay.dispatch(conn.connection_id, EventName.JOIN.value, data)


@pytest.fixture
def trio(relay):
    """Three joined connections with their outboxes drained."""
    a, b, c = relay.attach("a"), relay.attach("b"), relay.attach("c")
    join(relay, a, "u1", "Ann")
    join(relay, b, "u2", "Bob")
    join(relay, c, "u3", "Cat")
    for conn in (a, b, c):
        conn.pending()
    return a, b, c


class TestAttach:
    def test_attach_assigns_id(self, relay):
        conn = relay.attach()
        assert conn.connection_id
        assert conn.connection_id in relay.connections

    def test_attach_does_not_register_presence(self, relay):
        relay.attach("a")
        assert relay.online() == []


class TestJoin:
    def test_join_registers_and_replies(self, relay):
        a = relay.attach("a")
        join(relay, a, "u1", "Ann", avatar="https://example.com/a.png")

        sent = a.pending()
        assert [e.event for e in sent] == ["user:joined", "users:online"]
        assert sent[0].data == {
            "userId": "u1",
            "userName": "Ann",
            "userAvatar": "https://example.com/a.png",
            "socketId": "a",
        }
        assert sent[1].data == [
            {"userId": "u1", "userName": "Ann", "userAvatar": "https://example.com/a.png"}
        ]
        assert relay.registry.lookup("a") == Participant("u1", "Ann", "https://example.com/a.png")

    def test_join_broadcasts_to_everyone(self, relay):
        a, b = relay.attach("a"), relay.attach("b")
        join(relay, a, "u1", "Ann")
        a.pending()
        assert events(b) == ["user:joined"]

        join(relay, b, "u2", "Bob")

        assert events(a) == ["user:joined"]
        b_events = b.pending()
        assert [e.event for e in b_events] == ["user:joined", "users:online"]
        assert {p["userId"] for p in b_events[1].data} == {"u1", "u2"}

    def test_online_list_only_to_sender(self, relay):
        a, b = relay.attach("a"), relay.attach("b")
        join(relay, a, "u1", "Ann")
        a.pending()
        b.pending()

        join(relay, b, "u2", "Bob")

        assert "users:online" not in events(a)

    def test_rejoin_overwrites_presence(self, relay):
        a = relay.attach("a")
        join(relay, a, "u1", "Ann")
        join(relay, a, "u1", "Annie")

        assert len(relay.online()) == 1
        assert relay.online()[0].name == "Annie"

    def test_join_missing_fields_rejected(self, relay):
        a, b = relay.attach("a"), relay.attach("b")

        relay.dispatch("a", "user:join", {"userName": "Ann"})

        sent = a.pending()
        assert [e.event for e in sent] == ["error"]
        assert "userId" in sent[0].data["detail"]
        assert b.pending() == []
        assert relay.online() == []

    def test_join_non_object_payload_rejected(self, relay):
        a = relay.attach("a")
        relay.dispatch("a", "user:join", "Ann")
        assert events(a) == ["error"]

    def test_join_unattached_connection(self, relay):
        with pytest.raises(PayloadError):
            relay.join("ghost", {"userId": "u1", "userName": "Ann"})


class TestMessage:
    def test_fan_out_includes_sender(self, relay, trio):
        a, b, c = trio
        payload = {
            "id": "m1",
            "userId": "u1",
            "userName": "Ann",
            "content": "hi",
            "timestamp": "2026-01-01T00:00:00Z",
        }

        relay.dispatch("a", "message:send", payload)

        for conn in (a, b, c):
            sent = conn.pending()
            assert [e.event for e in sent] == ["message:received"]
            assert sent[0].data == payload

    def test_payload_is_forwarded_as_is(self, relay, trio):
        a, _, _ = trio
        payload = {"id": "m1", "userId": "u1", "content": "hi", "extra": {"nested": True}}

        relay.dispatch("a", "message:send", payload)

        assert a.pending()[0].data is payload

    def test_no_dedup(self, relay, trio):
        a, b, _ = trio
        payload = {"id": "m1", "userId": "u1", "content": "hi"}

        relay.dispatch("a", "message:send", payload)
        relay.dispatch("a", "message:send", payload)

        assert events(b) == ["message:received", "message:received"]

    def test_message_before_join_is_relayed(self, relay):
        a, b = relay.attach("a"), relay.attach("b")

        relay.dispatch("a", "message:send", {"id": "m1", "userId": "u1", "content": "hi"})

        assert events(b) == ["message:received"]

    def test_missing_id_rejected(self, relay, trio):
        a, b, c = trio

        relay.dispatch("a", "message:send", {"userId": "u1", "content": "hi"})

        assert events(a) == ["error"]
        assert b.pending() == []
        assert c.pending() == []


class TestTyping:
    def test_typing_start_excludes_sender(self, relay, trio):
        a, b, c = trio

        relay.dispatch("a", "typing:start", {"userId": "u1", "userName": "Ann"})

        assert a.pending() == []
        for conn in (b, c):
            sent = conn.pending()
            assert [e.event for e in sent] == ["user:typing"]
            assert sent[0].data == {"userId": "u1", "userName": "Ann"}

    def test_typing_stop_excludes_sender(self, relay, trio):
        a, b, c = trio

        relay.dispatch("a", "typing:stop", {"userId": "u1"})

        assert a.pending() == []
        assert events(b) == ["user:stopped-typing"]
        assert events(c) == ["user:stopped-typing"]

    def test_typing_missing_user_rejected(self, relay, trio):
        a, b, _ = trio

        relay.dispatch("a", "typing:start", {"userName": "Ann"})

        assert events(a) == ["error"]
        assert b.pending() == []


class TestDetach:
    def test_detach_broadcasts_left_once(self, relay, trio):
        a, b, c = trio

        left = relay.detach("c")

        assert left == Participant("u3", "Cat")
        for conn in (a, b):
            sent = conn.pending()
            assert [e.event for e in sent] == ["user:left"]
            assert sent[0].data == {"userId": "u3", "userName": "Cat", "socketId": "c"}

    def test_detach_removes_from_online_list(self, relay, trio):
        relay.detach("c")

        assert {p.id for p in relay.online()} == {"u1", "u2"}

        d = relay.attach("d")
        join(relay, d, "u4", "Dan")
        online = d.pending()[1].data
        assert {p["userId"] for p in online} == {"u1", "u2", "u4"}

    def test_detach_twice_is_noop(self, relay, trio):
        a, _, _ = trio
        relay.detach("c")
        a.pending()

        assert relay.detach("c") is None
        assert a.pending() == []

    def test_detach_unjoined_no_broadcast(self, relay, trio):
        a, _, _ = trio
        relay.attach("lurker")

        assert relay.detach("lurker") is None
        assert a.pending() == []

    def test_detached_connection_receives_nothing(self, relay, trio):
        a, b, c = trio
        relay.detach("c")

        relay.dispatch("a", "message:send", {"id": "m1", "userId": "u1"})

        assert c.pending() == []

    def test_close_all(self, relay, trio):
        relay.close_all()

        assert relay.connections == {}
        assert relay.online() == []


class TestDispatch:
    def test_unknown_event_replies_error(self, relay):
        a = relay.attach("a")

        relay.dispatch("a", "room:create", {})

        sent = a.pending()
        assert sent[0].event == "error"
        assert sent[0].data["event"] == "room:create"

    def test_ordering_per_connection(self, relay, trio):
        a, b, _ = trio

        relay.dispatch("a", "message:send", {"id": "m1", "userId": "u1"})
        relay.dispatch("c", "typing:start", {"userId": "u3"})
        relay.dispatch("a", "message:send", {"id": "m2", "userId": "u1"})

        sent = b.pending()
        assert [e.event for e in sent] == ["message:received", "user:typing", "message:received"]
        assert [sent[0].data["id"], sent[2].data["id"]] == ["m1", "m2"]


class TestBroadcastIsolation:
    def test_failing_connection_does_not_block_others(self, relay, trio, monkeypatch):
        a, b, c = trio

        def explode(event):
            raise RuntimeError("socket gone")

        monkeypatch.setattr(b, "enqueue", explode)

        delivered = relay.broadcast(RelayEvent(event="ping"))

        assert delivered == 2
        assert events(a) == ["ping"]
        assert events(c) == ["ping"]


class TestSignedInJoin:
    """Connections bound to a session join as the session's participant."""

    def test_join_uses_session_profile(self, relay):
        a = relay.attach("a", principal=Participant("u1", "Annie", "https://example.com/a.png"))

        relay.dispatch("a", "user:join", {"userId": "u1", "userName": "Ann"})

        sent = a.pending()
        assert sent[0].data["userName"] == "Annie"
        assert sent[0].data["userAvatar"] == "https://example.com/a.png"
        assert relay.registry.lookup("a") == Participant("u1", "Annie", "https://example.com/a.png")

    def test_join_as_someone_else_rejected(self, relay):
        a = relay.attach("a", principal=Participant("u1", "Ann"))
        b = relay.attach("b", principal=Participant("u2", "Bob"))

        relay.dispatch("a", "user:join", {"userId": "u2", "userName": "Bob"})

        sent = a.pending()
        assert [e.event for e in sent] == ["error"]
        assert sent[0].data["event"] == "user:join"
        assert b.pending() == []
        assert relay.online() == []


class TestDeliver:
    """Tests for the per-connection writer."""

    async def test_deliver_until_detached(self, relay, trio):
        a, _, _ = trio
        sent = []

        async def transport(frame: dict) -> None:
            sent.append(frame)

        writer = asyncio.create_task(relay.deliver("a", transport))
        await asyncio.sleep(0)

        relay.dispatch("b", "message:send", {"id": "m1", "userId": "u2"})
        relay.detach("a")

        assert await writer is True
        assert [frame["event"] for frame in sent] == ["message:received"]

    async def test_failed_send_detaches(self, relay, trio):
        """A dead socket stops receiving broadcasts and its user leaves."""
        a, b, c = trio

        async def broken(frame: dict) -> None:
            raise ConnectionResetError("gone")

        relay.dispatch("a", "message:send", {"id": "m1", "userId": "u1"})
        b.pending()
        c.pending()

        assert await relay.deliver("a", broken) is False

        assert "a" not in relay.connections
        assert a.is_closed
        assert {p.id for p in relay.online()} == {"u2", "u3"}
        left = b.pending()
        assert [e.event for e in left] == ["user:left"]
        assert left[0].data["userId"] == "u1"
        assert events(c) == ["user:left"]

        relay.dispatch("b", "message:send", {"id": "m2", "userId": "u2"})
        assert a.pending() == []

    async def test_deliver_unknown_connection(self, relay):
        async def transport(frame: dict) -> None:
            raise AssertionError("nothing to send")

        assert await relay.deliver("ghost", transport) is True
