"""Chat session: one viewer looking at one conversation."""

from datetime import datetime, timezone, tzinfo

from ..attachments import AttachmentPipeline, classify
from ..config import REALTIME_CHANNEL, REALTIME_EVENT
from ..identity import IIdentityService
from ..logging_config import get_logger
from ..models import AttachmentFile, DeliveryStatus, Message, MessageDraft
from ..realtime import BroadcastPayload, IRealtimeBroker
from ..storage import IStorage
from .grouping import DateGroup, build_render_model, format_display_timestamp
from .ingestion import RealtimeIngestion
from .names import ConversationNameResolver
from .receipts import ReadReceiptTracker
from .store import MessageStore


class ChatSession:
    """Owns the timeline of one conversation for the lifetime of a view.

    Local state is always updated before any network write; persisting,
    touching the conversation and broadcasting happen afterwards and their
    failures are logged, never rolled back.
    """

    def __init__(
        self,
        conversation_id: str,
        identity: IIdentityService,
        storage: IStorage,
        broker: IRealtimeBroker,
        attachments: AttachmentPipeline,
        resolver: ConversationNameResolver,
        receipts: ReadReceiptTracker | None = None,
        channel: str = REALTIME_CHANNEL,
        event_name: str = REALTIME_EVENT,
    ):
        self._conversation_id = conversation_id
        self._identity = identity
        self._storage = storage
        self._broker = broker
        self._attachments = attachments
        self._resolver = resolver
        self._receipts = receipts or ReadReceiptTracker(storage)
        self._channel = channel
        self._event_name = event_name
        self._logger = get_logger(__name__, conversation_id=conversation_id, viewer_id=None)

        self._store = MessageStore(conversation_id)
        self._ingestion = RealtimeIngestion(
            broker,
            self._store,
            channel=channel,
            event_name=event_name,
            on_message=self._on_remote_message,
        )
        self._viewer_id: str | None = None
        self._title: str | None = None
        self._pending_attachment: AttachmentFile | None = None
        self._mounted = False

    # State

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def viewer_id(self) -> str | None:
        return self._viewer_id

    @property
    def title(self) -> str | None:
        return self._title

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def store(self) -> MessageStore:
        return self._store

    @property
    def messages(self) -> list[Message]:
        return self._store.messages

    @property
    def pending_input(self) -> str:
        return self._store.pending_input

    @property
    def pending_attachment(self) -> AttachmentFile | None:
        return self._pending_attachment

    @property
    def can_send(self) -> bool:
        return bool(self._store.pending_input.strip())

    # Lifecycle

    async def mount(self, initial_messages: list[Message] | None = None) -> None:
        """Resolve the viewer, load the snapshot, name the chat and subscribe."""
        try:
            viewer = await self._identity.get_current_user()
            self._viewer_id = viewer.id
        except Exception as e:
            self._logger.error("Error fetching user: %s", e)
            self._viewer_id = None

        self._store.set_viewer(self._viewer_id)
        self._logger.extra["viewer_id"] = self._viewer_id

        if initial_messages is None:
            try:
                initial_messages = await self._storage.read_messages(
                    self._conversation_id, self._viewer_id
                )
            except Exception as e:
                self._logger.error(
                    "Error loading messages for %s: %s",
                    self._conversation_id,
                    e,
                    exc_info=True,
                )
                initial_messages = []

        self._store.initialize(self._conversation_id, initial_messages)
        self._title = await self._resolver.resolve(self._conversation_id, self._viewer_id)

        if self._viewer_id:
            await self._ingestion.start(self._viewer_id)
            await self._scan_receipts()

        self._mounted = True
        self._logger.info(
            "Mounted conversation %s for %s (%s messages)",
            self._conversation_id,
            self._viewer_id,
            len(self._store),
        )

    async def unmount(self) -> None:
        """Release the realtime channel. In-flight writes are not aborted."""
        await self._ingestion.stop()
        self._mounted = False

    async def __aenter__(self) -> "ChatSession":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.unmount()

    # Input

    def set_input(self, text: str) -> None:
        self._store.pending_input = text

    def select_attachment(self, file: AttachmentFile) -> None:
        """Attach a file to the next send. Raises UploadTooLarge / UnsupportedAttachment."""
        self._attachments.validate(file)
        self._pending_attachment = file

    def clear_attachment(self) -> None:
        self._pending_attachment = None

    # Sending

    async def send(self, text: str | None = None) -> Message | None:
        """Send the pending input (or text). Returns the optimistic message.

        Returns None when nothing was sent: empty input, unknown viewer,
        missing profile or a failed upload.
        """
        if text is not None:
            self._store.pending_input = text

        content = self._store.pending_input
        if not content.strip():
            return None

        try:
            viewer = await self._identity.get_current_user()
        except Exception as e:
            self._logger.error("Error fetching user: %s", e)
            return None

        try:
            first_name = await self._storage.read_account_first_name(viewer.id)
        except Exception as e:
            self._logger.error("Error fetching profile for %s: %s", viewer.id, e, exc_info=True)
            return None

        draft = MessageDraft(
            content=content,
            sender_id=viewer.id,
            sender_first_name=first_name,
        )

        attachment = self._pending_attachment
        if attachment is not None:
            try:
                meta = await self._attachments.store(attachment)
            except Exception as e:
                self._logger.error("File upload failed for %s: %s", attachment.name, e)
                return None
            draft.message_type = classify(meta.mime_type)
            draft.attachment_url = meta.url
            draft.attachment_name = attachment.name

        message = self._store.append_optimistic(draft)
        self._pending_attachment = None

        if await self._deliver(message):
            await self._scan_receipts()
        return message

    async def retry(self, client_id: str) -> bool:
        """Re-run the persisted write and broadcast for a failed message."""
        message = self._store.find(client_id)
        if message is None or message.status != DeliveryStatus.FAILED:
            return False

        self._store.mark_pending(client_id)
        if not await self._deliver(message):
            return False
        await self._scan_receipts()
        return True

    async def _deliver(self, message: Message) -> bool:
        try:
            persisted_id = await self._storage.insert_message(message)
        except Exception as e:
            self._logger.error(
                "Error sending message %s: %s", message.client_id, e, exc_info=True
            )
            self._store.mark_failed(message.client_id)
            return False

        self._store.commit_persisted(message.client_id, persisted_id)

        now = datetime.now(timezone.utc)
        try:
            await self._storage.touch_conversation_updated_at(self._conversation_id, now)
        except Exception as e:
            self._logger.error(
                "Error updating conversation %s time: %s", self._conversation_id, e
            )

        payload = BroadcastPayload(
            sender_id=message.sender_id,
            content=message.content,
            first_name=message.sender_first_name,
            created_at=format_display_timestamp(now),
            attachment_url=message.attachment_url,
            message_type=message.message_type,
            conversation_id=self._conversation_id,
            client_id=message.client_id,
            message_id=persisted_id,
            sent_at=message.created_at,
        )
        try:
            await self._broker.publish(
                self._channel, self._event_name, payload.model_dump(mode="json")
            )
        except Exception as e:
            self._logger.error("Error broadcasting message %s: %s", persisted_id, e)

        return True

    # Incoming

    async def _on_remote_message(self, message: Message) -> None:
        await self._scan_receipts()

    async def _scan_receipts(self) -> None:
        await self._receipts.scan(self._store, self._viewer_id)

    # Rendering

    def render(self, now: datetime | None = None, tz: tzinfo | None = None) -> list[DateGroup]:
        """Grouped view of the timeline.

        Sender names are shown only when the first loaded message carries one.
        """
        messages = self._store.messages
        show_names = bool(messages and messages[0].sender_first_name)
        return build_render_model(
            messages,
            self._viewer_id,
            now=now,
            tz=tz,
            show_sender_names=show_names,
        )
