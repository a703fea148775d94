"""Conversation API routes."""

from datetime import datetime

from fastapi import APIRouter, File, Form, Header, HTTPException, UploadFile, status
from pydantic import BaseModel

from ...app import IApplication
from ...chat import DateGroup
from ...errors import UnsupportedAttachment, UploadTooLarge
from ...models import AttachmentFile, Message


class MessageResponse(BaseModel):
    """Response model for a message."""

    id: str | None
    client_id: str | None
    conversation_id: str
    content: str
    message_type: str
    attachment_url: str | None
    attachment_name: str | None
    created_at: datetime
    sender_id: str
    first_name: str | None
    read: bool
    status: str


class RenderRowResponse(MessageResponse):
    """A message as displayed in the timeline."""

    outgoing: bool
    tight: bool
    time_label: str
    sender_label: str | None


class DateGroupResponse(BaseModel):
    """Messages under one date label."""

    label: str
    rows: list[RenderRowResponse]


class ConversationViewResponse(BaseModel):
    """Everything a chat view needs to draw itself."""

    conversation_id: str
    title: str | None
    groups: list[DateGroupResponse]


class TitleResponse(BaseModel):
    """Response model for conversation title."""

    title: str | None


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def message_to_dict(message: Message) -> dict:
    return {
        "id": message.id,
        "client_id": message.client_id,
        "conversation_id": message.conversation_id,
        "content": message.content,
        "message_type": message.message_type.value,
        "attachment_url": message.attachment_url,
        "attachment_name": message.attachment_name,
        "created_at": message.created_at,
        "sender_id": message.sender_id,
        "first_name": message.sender_first_name,
        "read": message.read,
        "status": message.status.value,
    }


def group_to_dict(group: DateGroup) -> dict:
    return {
        "label": group.label,
        "rows": [
            {
                **message_to_dict(row.message),
                "outgoing": row.outgoing,
                "tight": row.tight,
                "time_label": row.time_label,
                "sender_label": row.sender_label,
            }
            for row in group.rows
        ],
    }


def require_viewer(x_user_id: str | None) -> str:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No user found")
    return x_user_id


def create_conversations_router(app: IApplication) -> APIRouter:
    """Create conversations router."""
    router = APIRouter(prefix="/api/conversations", tags=["conversations"])

    @router.get("/{conversation_id}/messages", response_model=ConversationViewResponse)
    async def get_messages(
        conversation_id: str,
        x_user_id: str | None = Header(None),
    ) -> dict:
        """Grouped timeline for the viewer."""
        viewer_id = require_viewer(x_user_id)
        session = await app.open_session(conversation_id, viewer_id)
        return {
            "conversation_id": conversation_id,
            "title": session.title,
            "groups": [group_to_dict(group) for group in session.render()],
        }

    @router.post(
        "/{conversation_id}/messages",
        response_model=MessageResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def send_message(
        conversation_id: str,
        text: str = Form(""),
        file: UploadFile | None = File(None),
        x_user_id: str | None = Header(None),
    ) -> dict:
        """Send a message, optionally with an attachment."""
        viewer_id = require_viewer(x_user_id)
        session = await app.open_session(conversation_id, viewer_id)

        if file is not None:
            # One byte past the limit is enough to reject without buffering the rest
            attachment = AttachmentFile(
                name=file.filename or "upload.bin",
                data=await file.read(app.attachments.max_bytes + 1),
                content_type=file.content_type,
            )
            try:
                session.select_attachment(attachment)
            except UploadTooLarge as e:
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e)
                )
            except UnsupportedAttachment as e:
                raise HTTPException(
                    status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e)
                )

        message = await session.send(text)
        if message is None:
            session.clear_attachment()
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Message was not sent"
            )
        return message_to_dict(message)

    @router.post(
        "/{conversation_id}/messages/{client_id}/retry",
        response_model=MessageResponse,
    )
    async def retry_message(
        conversation_id: str,
        client_id: str,
        x_user_id: str | None = Header(None),
    ) -> dict:
        """Retry a message whose persisted write failed."""
        viewer_id = require_viewer(x_user_id)
        session = await app.open_session(conversation_id, viewer_id)

        if not await session.retry(client_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Message {client_id} is not awaiting retry",
            )
        return message_to_dict(session.store.find(client_id))

    @router.get("/{conversation_id}/title", response_model=TitleResponse)
    async def get_title(
        conversation_id: str,
        x_user_id: str | None = Header(None),
    ) -> dict:
        """Conversation display title."""
        viewer_id = require_viewer(x_user_id)
        session = await app.open_session(conversation_id, viewer_id)
        return {"title": session.title}

    @router.delete("/{conversation_id}/session", response_model=StatusResponse)
    async def close_session(
        conversation_id: str,
        x_user_id: str | None = Header(None),
    ) -> dict:
        """Unmount the viewer's chat session."""
        viewer_id = require_viewer(x_user_id)
        closed = await app.close_session(conversation_id, viewer_id)
        return {"status": "ok" if closed else "not_open"}

    return router
