# src/listing_messages/api/v1/endpoints/messages.py
"""Listing message endpoints for the marketplace API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Response, status

from listing_messages.api.v1.dependencies import CurrentUserIdDep, MessageServiceDep
from listing_messages.schemas.message import (
    BulkReadRequest,
    ContactMessageCreate,
    ConversationsResponse,
    MessageView,
    ReplyCreate,
    SendConfirmation,
    UnreadCount,
)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SendConfirmation)
def send_contact_message(
    message_data: ContactMessageCreate,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> SendConfirmation:
    """Contact the seller of a listing."""
    if message_data.recipient_id == current_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot send a message to yourself",
        )
    result = service.send_contact_message(
        message_data.listing_id,
        message_data.recipient_id,
        current_user_id,
        message_data,
    )
    return SendConfirmation(**result)


@router.get("/sent", response_model=list[MessageView])
def get_sent_messages(
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> list[MessageView]:
    """List messages the caller sent."""
    return service.get_sent_messages(current_user_id)


@router.get("/received", response_model=list[MessageView])
def get_received_messages(
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> list[MessageView]:
    """List the caller's inbox."""
    return service.get_received_messages(current_user_id)


@router.get("/archived", response_model=list[MessageView])
def get_archived_messages(
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> list[MessageView]:
    """List messages the caller archived."""
    return service.get_archived_messages(current_user_id)


@router.get("/conversations", response_model=ConversationsResponse)
def get_conversations(
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> ConversationsResponse:
    """Return every conversation the caller takes part in."""
    result = service.get_conversations(current_user_id)
    return ConversationsResponse(
        conversations=result.conversations,
        unread_count=result.unread_count,
    )


@router.get("/unread-count", response_model=UnreadCount)
def get_unread_count(
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> UnreadCount:
    """Return the number of unread messages in the caller's inbox."""
    return UnreadCount(count=service.get_unread_message_count(current_user_id))


@router.get("/unread", response_model=list[MessageView])
def get_recent_unread(
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
    limit: int | None = Query(None, ge=1, le=50),
) -> list[MessageView]:
    """Return the newest unread messages for the caller."""
    return service.get_recent_unread_messages(current_user_id, limit)


@router.get("/threads/{thread_id}", response_model=list[MessageView])
def get_message_thread(
    thread_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> list[MessageView]:
    """Return one conversation, marking the caller's incoming messages read."""
    return service.get_message_thread(thread_id, current_user_id)


@router.put("/read")
def mark_messages_read(
    request: BulkReadRequest,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> dict[str, int]:
    """Mark several received messages as read."""
    updated = service.mark_as_read_bulk(request.message_ids, current_user_id)
    return {"updated": updated}


@router.post(
    "/{message_id}/replies",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageView,
)
def reply_to_message(
    message_id: str,
    reply: ReplyCreate,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> MessageView:
    """Reply to a message in a conversation the caller belongs to."""
    return service.reply_to_message(message_id, reply.body, current_user_id)


@router.put("/{message_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_message_read(
    message_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> Response:
    """Mark a message as read."""
    service.mark_as_read(message_id, current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{message_id}/unread", status_code=status.HTTP_204_NO_CONTENT)
def mark_message_unread(
    message_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> Response:
    """Mark a message as unread."""
    service.mark_as_unread(message_id, current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{message_id}/archive", status_code=status.HTTP_204_NO_CONTENT)
def archive_message(
    message_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> Response:
    """Archive a received message."""
    service.archive_message(message_id, current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{message_id}/unarchive", status_code=status.HTTP_204_NO_CONTENT)
def unarchive_message(
    message_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> Response:
    """Restore an archived message to the inbox."""
    service.unarchive_message(message_id, current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
    cascade_related: bool = Query(True),
) -> Response:
    """Delete a message and, by default, everything that depends on it."""
    service.delete_message(message_id, cascade_related, current_user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{message_id}", response_model=MessageView)
def get_message(
    message_id: str,
    current_user_id: CurrentUserIdDep,
    service: MessageServiceDep,
) -> MessageView:
    """Return a single message visible to the caller."""
    message = service.get_message_by_id(message_id)
    if message is None or current_user_id not in (message.sender_id, message.recipient_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found",
        )
    return message
