"""Tests for ChatSession: mount, send, receive and teardown."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from chat_core.attachments import AttachmentPipeline
from chat_core.chat import ReadReceiptTracker
from chat_core.config import REALTIME_CHANNEL, REALTIME_EVENT
from chat_core.errors import PersistedWriteFailed, UnsupportedAttachment, UploadTooLarge
from chat_core.models import AttachmentFile, DeliveryStatus, Message, MessageType


def capture(broker):
    """Subscribe a plain listener and collect every broadcast payload."""
    received = []

    async def handler(payload):
        received.append(payload)

    broker.subscribe(REALTIME_CHANNEL).bind(REALTIME_EVENT, handler)
    return received


class TestMount:
    """Tests for ChatSession.mount()."""

    async def test_mount_resolves_viewer_and_title(self, seeded, make_session, broker):
        """Test mounting names the chat after the counterpart and subscribes."""
        session = make_session("alice")

        await session.mount()

        assert session.mounted
        assert session.viewer_id == "alice"
        assert session.title == "Bob"
        assert broker.subscriber_count(REALTIME_CHANNEL) == 1

    async def test_mount_loads_snapshot_and_marks_read(self, seeded, make_session):
        """Test the persisted history is loaded and receipts are written."""
        await seeded.insert_message(
            Message(
                id="m1",
                conversation_id="conv1",
                content="Did you finish the essay?",
                created_at=datetime(2026, 10, 18, 20, tzinfo=timezone.utc),
                sender_id="bob",
            )
        )
        session = make_session("alice")

        await session.mount()

        assert [m.content for m in session.messages] == ["Did you finish the essay?"]
        assert session.messages[0].sender_first_name == "Bob"
        assert session.messages[0].read is True
        receipts = await seeded.get_read_receipts("m1")
        assert [r.user_id for r in receipts] == ["alice"]

    async def test_mount_with_initial_messages(self, seeded, make_session):
        """Test a server-provided snapshot is used instead of a fetch."""
        snapshot = [
            Message(
                id="m1",
                conversation_id="conv1",
                content="preloaded",
                created_at=datetime.now(timezone.utc),
                sender_id="bob",
            )
        ]
        session = make_session("alice")

        await session.mount(initial_messages=snapshot)

        assert [m.content for m in session.messages] == ["preloaded"]

    async def test_mount_without_identity(self, seeded, make_session, broker):
        """Test an unknown viewer loads history but doesn't subscribe."""
        session = make_session(None)

        await session.mount()

        assert session.viewer_id is None
        assert session.mounted
        assert broker.subscriber_count(REALTIME_CHANNEL) == 0

    async def test_context_manager(self, seeded, make_session, broker):
        """Test the session unmounts when the context exits."""
        async with make_session("alice") as session:
            assert session.mounted
            assert broker.subscriber_count(REALTIME_CHANNEL) == 1

        assert not session.mounted
        assert broker.subscriber_count(REALTIME_CHANNEL) == 0


class TestSend:
    """Tests for ChatSession.send()."""

    async def test_send_hello(self, seeded, make_session, broker):
        """Test one send appends locally, persists and broadcasts once."""
        received = capture(broker)
        session = make_session("alice")
        await session.mount()
        read_when_broadcast = []

        async def snapshot(payload):
            read_when_broadcast.append(session.messages[0].read)

        broker.subscribe(REALTIME_CHANNEL).bind(REALTIME_EVENT, snapshot)

        session.set_input("hello")
        message = await session.send()

        assert len(session.messages) == 1
        local = session.messages[0]
        assert local is message
        assert local.content == "hello"
        assert local.message_type == MessageType.TEXT
        assert local.attachment_url is None
        assert read_when_broadcast == [False]
        assert local.status == DeliveryStatus.SENT
        assert local.id is not None
        assert session.pending_input == ""

        assert len(received) == 1
        payload = received[0]
        assert payload["content"] == "hello"
        assert payload["sender_id"] == "alice"
        assert payload["first_name"] == "Alice"
        assert payload["message_type"] == "text"
        assert payload["conversation_id"] == "conv1"
        assert payload["message_id"] == local.id

        persisted = await seeded.read_messages("conv1")
        assert [(m.id, m.content) for m in persisted] == [(local.id, "hello")]

    async def test_send_touches_conversation(self, seeded, make_session):
        """Test a successful send bumps the conversation's updated_at."""
        session = make_session("alice")
        await session.mount()

        await session.send("hi")

        conversation = await seeded.get_conversation("conv1")
        assert conversation.updated_at > datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_empty_input_is_noop(self, seeded, make_session, broker, text):
        """Test whitespace-only input sends nothing."""
        received = capture(broker)
        session = make_session("alice")
        await session.mount()

        assert await session.send(text) is None

        assert session.messages == []
        assert received == []
        assert not session.can_send

    async def test_identity_unavailable_sends_nothing(self, seeded, make_session, broker):
        """Test a send without a viewer is abandoned."""
        received = capture(broker)
        session = make_session(None)
        await session.mount()

        assert await session.send("hello") is None

        assert session.messages == []
        assert received == []
        assert await seeded.read_messages("conv1") == []

    async def test_send_image_attachment(self, seeded, make_session, blob_store, broker):
        """Test an image upload tags the message and carries its URL."""
        received = capture(broker)
        session = make_session("alice")
        await session.mount()

        session.select_attachment(AttachmentFile(name="graph.png", data=b"\x89PNG..."))
        message = await session.send("see attached")

        assert message.message_type == MessageType.IMAGE
        assert message.attachment_url.startswith("/attachments/")
        assert message.attachment_url.endswith("-graph.png")
        assert message.attachment_name == "graph.png"
        assert session.pending_attachment is None
        assert len(list(blob_store.root.iterdir())) == 1
        assert received[0]["message_type"] == "image"
        assert received[0]["attachment_url"] == message.attachment_url

    async def test_send_docx_attachment(self, seeded, make_session):
        """Test a Word document is tagged as docx."""
        session = make_session("alice")
        await session.mount()

        session.select_attachment(AttachmentFile(name="Essay.DOCX", data=b"PK..."))
        message = await session.send("draft")

        assert message.message_type == MessageType.DOCX

    async def test_oversized_file_is_rejected_before_upload(
        self, seeded, make_session, blob_store
    ):
        """Test a file over the limit never uploads or appends."""
        session = make_session("alice")
        await session.mount()

        big = AttachmentFile(name="scan.pdf", data=b"0" * (1024 * 1024 + 1))
        with pytest.raises(UploadTooLarge):
            session.select_attachment(big)

        assert session.pending_attachment is None
        assert session.messages == []
        assert list(blob_store.root.iterdir()) == []

    async def test_unsupported_file_is_rejected(self, seeded, make_session):
        """Test an extension outside the accepted set is refused."""
        session = make_session("alice")
        await session.mount()

        with pytest.raises(UnsupportedAttachment):
            session.select_attachment(AttachmentFile(name="notes.txt", data=b"hi"))

        assert session.pending_attachment is None

    async def test_upload_failure_aborts_send(self, seeded, make_session, broker):
        """Test a failed upload appends, persists and broadcasts nothing."""
        blob = Mock()
        blob.upload = AsyncMock(side_effect=OSError("disk full"))
        blob.public_url = Mock(return_value="/attachments/x")
        received = capture(broker)
        session = make_session("alice", attachments=AttachmentPipeline(blob))
        await session.mount()

        session.select_attachment(AttachmentFile(name="a.png", data=b"img"))
        assert await session.send("with file") is None

        assert session.messages == []
        assert received == []
        assert await seeded.read_messages("conv1") == []
        assert session.pending_input == "with file"

    async def test_persisted_write_failure_marks_failed(
        self, seeded, make_session, broker, monkeypatch
    ):
        """Test a failed insert keeps the entry, flags it and skips the broadcast."""
        received = capture(broker)
        session = make_session("alice")
        await session.mount()
        monkeypatch.setattr(
            seeded, "insert_message", AsyncMock(side_effect=PersistedWriteFailed("down"))
        )

        message = await session.send("hello")

        assert len(session.messages) == 1
        assert message.status == DeliveryStatus.FAILED
        assert message.id is None
        assert received == []

    async def test_retry_after_failure(self, seeded, make_session, broker, monkeypatch):
        """Test retry re-runs the write and broadcast for a failed entry."""
        received = capture(broker)
        original = seeded.insert_message
        calls = []

        async def flaky(message):
            calls.append(message)
            if len(calls) == 1:
                raise PersistedWriteFailed("down")
            return await original(message)

        monkeypatch.setattr(seeded, "insert_message", flaky)
        session = make_session("alice")
        await session.mount()

        message = await session.send("hello")
        assert message.status == DeliveryStatus.FAILED

        assert await session.retry(message.client_id) is True

        assert message.status == DeliveryStatus.SENT
        assert message.id is not None
        assert len(session.messages) == 1
        assert len(received) == 1
        assert len(await seeded.read_messages("conv1")) == 1

    async def test_retry_ignores_sent_and_unknown(self, seeded, make_session):
        """Test retry only applies to failed entries."""
        session = make_session("alice")
        await session.mount()
        message = await session.send("hello")

        assert await session.retry(message.client_id) is False
        assert await session.retry("unknown") is False

    async def test_broadcast_failure_keeps_message(self, seeded, make_session, broker, monkeypatch):
        """Test a failed broadcast is logged and the message stays sent."""
        session = make_session("alice")
        await session.mount()
        monkeypatch.setattr(broker, "publish", AsyncMock(side_effect=RuntimeError("offline")))

        message = await session.send("hello")

        assert message.status == DeliveryStatus.SENT
        assert len(await seeded.read_messages("conv1")) == 1


class TestExchange:
    """Two viewers on the same conversation."""

    async def test_message_reaches_other_viewer(self, seeded, make_session):
        """Test a send shows up once on both sides."""
        alice = make_session("alice")
        bob = make_session("bob")
        await alice.mount()
        await bob.mount()

        await alice.send("Ready for the quiz?")

        assert [m.content for m in alice.messages] == ["Ready for the quiz?"]
        assert [m.content for m in bob.messages] == ["Ready for the quiz?"]
        incoming = bob.messages[0]
        assert incoming.sender_id == "alice"
        assert incoming.sender_first_name == "Alice"
        assert incoming.id == alice.messages[0].id

    async def test_incoming_message_is_marked_read(self, seeded, make_session):
        """Test the receiving viewer writes a receipt on arrival."""
        alice = make_session("alice")
        bob = make_session("bob")
        await alice.mount()
        await bob.mount()

        message = await alice.send("hi")

        assert bob.messages[0].read is True
        receipts = await seeded.get_read_receipts(message.id)
        assert sorted(r.user_id for r in receipts) == ["alice", "bob"]

    async def test_own_send_is_marked_read(self, seeded, make_session):
        """Test the sender's own entry gets a receipt once it is persisted."""
        alice = make_session("alice")
        await alice.mount()

        message = await alice.send("hi")

        assert alice.messages[0].read is True
        receipts = await seeded.get_read_receipts(message.id)
        assert [r.user_id for r in receipts] == ["alice"]

    async def test_own_send_unread_when_excluding_own(self, seeded, make_session):
        """Test the stricter receipt mode leaves the sender's entry unread."""
        alice = make_session(
            "alice", receipts=ReadReceiptTracker(seeded, exclude_own_messages=True)
        )
        await alice.mount()

        message = await alice.send("hi")

        assert alice.messages[0].read is False
        assert await seeded.get_read_receipts(message.id) == []

    async def test_retry_marks_own_message_read(self, seeded, make_session, monkeypatch):
        """Test a retried message is marked read once it is persisted."""
        original = seeded.insert_message
        attempts = []

        async def flaky(message):
            attempts.append(message)
            if len(attempts) == 1:
                raise PersistedWriteFailed("down")
            return await original(message)

        monkeypatch.setattr(seeded, "insert_message", flaky)
        alice = make_session("alice")
        await alice.mount()

        message = await alice.send("hi")
        assert message.read is False

        await alice.retry(message.client_id)

        assert message.read is True
        receipts = await seeded.get_read_receipts(message.id)
        assert [r.user_id for r in receipts] == ["alice"]

    async def test_other_conversation_is_not_shown(self, seeded, make_session):
        """Test broadcasts for another conversation are filtered out."""
        from chat_core.models import Conversation, Participant

        await seeded.save_conversation(Conversation(id="conv2"))
        await seeded.add_participant(Participant(conversation_id="conv2", user_id="bob"))
        alice = make_session("alice")
        bob_elsewhere = make_session("bob", conversation_id="conv2")
        await alice.mount()
        await bob_elsewhere.mount()

        await bob_elsewhere.send("wrong room")

        assert alice.messages == []

    async def test_unmount_stops_delivery(self, seeded, make_session, broker):
        """Test nothing arrives after teardown."""
        alice = make_session("alice")
        bob = make_session("bob")
        await alice.mount()
        await bob.mount()

        await bob.unmount()
        await alice.send("anyone?")

        assert bob.messages == []
        assert broker.subscriber_count(REALTIME_CHANNEL) == 1


class TestRender:
    """Tests for ChatSession.render()."""

    async def test_render_groups_today(self, seeded, make_session):
        """Test a fresh send renders under 'Today' as an outgoing row."""
        alice = make_session("alice")
        bob = make_session("bob")
        await alice.mount()
        await bob.mount()

        await alice.send("first")
        await bob.send("second")

        now = datetime.now(timezone.utc)
        (group,) = alice.render(now=now, tz=timezone.utc)

        assert group.label == "Today"
        assert [row.outgoing for row in group.rows] == [True, False]
        assert [row.sender_label for row in group.rows] == [None, "Bob"]

    async def test_render_empty(self, seeded, make_session):
        session = make_session("alice")
        await session.mount()
        assert session.render() == []
