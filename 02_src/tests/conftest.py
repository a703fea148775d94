"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from chat_core.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def broker():
    """Create an in-process realtime broker."""
    from chat_core.realtime import RealtimeBroker

    return RealtimeBroker()


@pytest.fixture
def blob_store(tmp_path):
    """Create a blob store under a temporary directory."""
    from chat_core.attachments import LocalBlobStore

    return LocalBlobStore(tmp_path / "attachments", base_url="/attachments")


@pytest.fixture
def attachments(blob_store):
    """Create the attachment pipeline."""
    from chat_core.attachments import AttachmentPipeline

    return AttachmentPipeline(blob_store)


@pytest.fixture
def resolver(storage):
    """Create a conversation name resolver."""
    from chat_core.chat import ConversationNameResolver

    return ConversationNameResolver(storage)


@pytest_asyncio.fixture
async def seeded(storage):
    """Direct conversation 'conv1' between Alice (tutor) and Bob (student)."""
    from chat_core.models import Account, Conversation, Participant

    await storage.save_account(Account(id="alice", first_name="Alice"))
    await storage.save_account(Account(id="bob", first_name="Bob"))
    await storage.save_conversation(
        Conversation(id="conv1", title=None, updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
    )
    await storage.add_participant(Participant(conversation_id="conv1", user_id="alice"))
    await storage.add_participant(Participant(conversation_id="conv1", user_id="bob"))
    return storage


@pytest.fixture
def make_session(storage, broker, attachments, resolver):
    """Factory for chat sessions sharing storage and broker."""
    from chat_core.chat import ChatSession
    from chat_core.identity import StaticIdentity

    def _make(viewer_id: str | None, conversation_id: str = "conv1", **kwargs):
        return ChatSession(
            conversation_id=conversation_id,
            identity=StaticIdentity(viewer_id),
            storage=kwargs.pop("storage", storage),
            broker=broker,
            attachments=kwargs.pop("attachments", attachments),
            resolver=kwargs.pop("resolver", resolver),
            **kwargs,
        )

    return _make
