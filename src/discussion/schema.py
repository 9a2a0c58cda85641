"""
Discussion Schema Definitions

Defines agents, messages and prompt entries exchanged inside a discussion.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Discriminator, Field, Tag


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class AgentRole(str, Enum):
    MODERATOR = "moderator"
    PARTICIPANT = "participant"


class MessageType(str, Enum):
    TEXT = "text"                    # Ordinary chat message
    ACTION_RESULT = "action_result"  # Output of executed capabilities


class MessageStatus(str, Enum):
    STREAMING = "streaming"
    COMPLETED = "completed"
    ERROR = "error"


class ConversationSettings(BaseModel):
    """Per-agent conversation tuning"""
    min_response_delay: Optional[int] = Field(default=None, ge=0, description="Delay before replying (ms)")
    context_messages: Optional[int] = Field(default=None, ge=0, description="Minimum history messages in the prompt")


class AgentDef(BaseModel):
    """
    Static definition of an agent persona.

    Example:
        id: "agent-critic"
        name: "Critic"
        role: "participant"
        expertise: ["logic", "argumentation"]
    """
    id: str = Field(..., description="Agent identifier")
    name: str = Field(..., description="Display name")
    slug: Optional[str] = Field(default=None, description="Stable identifier for built-in agents")
    version: Optional[int] = Field(default=None, description="Definition version for built-in agents")
    avatar: str = Field(default="", description="Avatar URL")
    prompt: str = Field(default="", description="System prompt template")
    role: AgentRole = Field(default=AgentRole.PARTICIPANT)
    personality: str = Field(default="")
    expertise: List[str] = Field(default_factory=list)
    bias: str = Field(default="")
    response_style: str = Field(default="")
    conversation: Optional[ConversationSettings] = Field(default=None)


class AgentConfig(AgentDef):
    """Agent definition bound to a running discussion"""
    agent_id: str = Field(..., description="Identifier the agent speaks under")
    can_use_actions: Optional[bool] = Field(default=None)

    @classmethod
    def from_agent(
        cls,
        agent: AgentDef,
        agent_id: Optional[str] = None,
        can_use_actions: Optional[bool] = None,
        conversation: Optional[ConversationSettings] = None,
    ) -> "AgentConfig":
        data = agent.model_dump()
        data["agent_id"] = agent_id or agent.id
        data["can_use_actions"] = can_use_actions
        if conversation is not None:
            data["conversation"] = conversation.model_dump()
        return cls(**data)


class NormalMessage(BaseModel):
    """A chat turn authored by an agent, the user or the system"""
    id: str = Field(default_factory=_new_id)
    discussion_id: str
    agent_id: str = Field(..., description="Agent id or the 'user' / 'system' sentinel")
    content: str = ""
    type: Literal["text"] = "text"
    timestamp: datetime = Field(default_factory=_now)
    status: Optional[MessageStatus] = None
    last_update_time: Optional[datetime] = None


class ActionResultItem(BaseModel):
    """Outcome of a single capability invocation"""
    operation_id: str
    capability: str
    params: Dict[str, Any] = Field(default_factory=dict)
    status: Literal["success", "error"]
    result: Any = None
    description: str = ""
    error: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class ActionResultMessage(BaseModel):
    """Results of the actions requested by an agent message"""
    id: str = Field(default_factory=_new_id)
    discussion_id: str
    agent_id: str = "system"
    type: Literal["action_result"] = "action_result"
    timestamp: datetime = Field(default_factory=_now)
    origin_message_id: Optional[str] = None
    results: List[ActionResultItem] = Field(default_factory=list)


def _message_tag(value: Any) -> str:
    # Untagged entries are ordinary text messages
    if isinstance(value, dict):
        return value.get("type") or MessageType.TEXT.value
    return getattr(value, "type", None) or MessageType.TEXT.value


AgentMessage = Annotated[
    Union[
        Annotated[NormalMessage, Tag(MessageType.TEXT.value)],
        Annotated[ActionResultMessage, Tag(MessageType.ACTION_RESULT.value)],
    ],
    Discriminator(_message_tag),
]


class PromptMessage(BaseModel):
    """One role-tagged entry of a model prompt"""
    role: Literal["system", "user"]
    content: str


class Member(BaseModel):
    agent_id: str
    is_auto_reply: bool = False


class ToolPermissions(BaseModel):
    moderator: Optional[bool] = True
    participant: Optional[bool] = False


class DiscussionSettings(BaseModel):
    """Runtime settings of a discussion"""
    max_rounds: int = 20
    temperature: float = 0.7
    interval: int = Field(default=3000, description="Pause between turns (ms)")
    moderation_style: Literal["strict", "relaxed"] = "relaxed"
    focus_topics: List[str] = Field(default_factory=list)
    allow_conflict: bool = True
    tool_permissions: ToolPermissions = Field(default_factory=ToolPermissions)
