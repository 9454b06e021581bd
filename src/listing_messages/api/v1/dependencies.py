"""Shared API dependencies for caller identity and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from listing_messages.core.security import decode_subject
from listing_messages.db.session import get_db
from listing_messages.services.messaging import MessageService

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> str:
    """Return the user id carried by the bearer token.

    Raises:
        HTTPException: If the token is invalid or has no subject.
    """
    user_id = decode_subject(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user_id


def get_message_service(db: SessionDep) -> MessageService:
    """Build the message service around the request's session."""
    return MessageService(db)


# Type aliases for common dependencies
CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]
