"""
Discussion module - Messages, turn-taking and storage
"""

from .errors import DiscussionError, DiscussionErrorType
from .mentions import MentionResolver
from .next_speaker import NextSpeakerSelector
from .schema import (
    ActionResultMessage,
    AgentConfig,
    AgentDef,
    DiscussionSettings,
    Member,
    NormalMessage,
    PromptMessage,
)
from .store import MessageNotFoundError, MessageStore

__all__ = [
    "ActionResultMessage",
    "AgentConfig",
    "AgentDef",
    "DiscussionError",
    "DiscussionErrorType",
    "DiscussionSettings",
    "Member",
    "MentionResolver",
    "MessageNotFoundError",
    "MessageStore",
    "NextSpeakerSelector",
    "NormalMessage",
    "PromptMessage",
]
