"""
Chat presence module.

Conversation feeds and the chat window manager.
"""

from voicebook.presence.chat import (
    ChatPresenceManager,
    ChatWindowSet,
    LastSeenMessageIndex,
    channel_id,
    select_auto_open,
)
from voicebook.presence.feed import (
    ConversationFeed,
    ConversationSummary,
    InMemoryConversationFeed,
    LastMessage,
    WebSocketConversationFeed,
    parse_conversations,
)

__all__ = [
    "ChatPresenceManager",
    "ChatWindowSet",
    "LastSeenMessageIndex",
    "channel_id",
    "select_auto_open",
    "ConversationFeed",
    "ConversationSummary",
    "InMemoryConversationFeed",
    "LastMessage",
    "WebSocketConversationFeed",
    "parse_conversations",
]
