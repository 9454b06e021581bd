"""Business logic services for the Listing Messages application."""

from .conversations import ConversationAggregator
from .deletion import DeletionCascadeManager
from .listings import ListingCatalog
from .messaging import MessageService
from .notifications import EmailSender, NotificationDispatcher
from .participants import ParticipantDirectory
from .read_state import ReadStateTracker
from .replies import ReplyChainWriter
from .threads import ThreadResolver

__all__ = [
    "ConversationAggregator",
    "DeletionCascadeManager",
    "EmailSender",
    "ListingCatalog",
    "MessageService",
    "NotificationDispatcher",
    "ParticipantDirectory",
    "ReadStateTracker",
    "ReplyChainWriter",
    "ThreadResolver",
]
