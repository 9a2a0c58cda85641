"""
Prompt Builder

Turns a discussion history plus the responding agent's configuration into
the ordered list of role-tagged messages sent to the LLM.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from ..discussion.schema import (
    ActionResultMessage,
    AgentConfig,
    AgentDef,
    PromptMessage,
)
from .prompts import PromptTemplates

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHARS = 20000
DEFAULT_CONTEXT_MESSAGES = 10


@dataclass(frozen=True)
class ContextWindow:
    """How much of the history made it into a prompt"""
    total: int
    within_budget: int
    min_context_messages: int
    included: int
    included_chars: int


@dataclass(frozen=True)
class PromptPlan:
    """Prompt messages plus the window that produced them"""
    messages: List[PromptMessage]
    window: ContextWindow

    @property
    def system_prompt(self) -> str:
        return self.messages[0].content


class PromptBuilder:
    """
    Builds the prompt for one agent turn.

    The history is windowed from the newest message backward: the messages
    that fit in `max_chars` are counted, then
    `included = min(total, max(within_budget + 1, min_context_messages))`
    of the most recent messages are kept. The budget is soft; the minimum
    message count and the extra message may push past it.

    Usage:
        builder = PromptBuilder()
        messages = builder.build_prompt(
            current_agent=agent,
            current_agent_config=config,
            agents=members,
            messages=history,
            capabilities=registry.get_capabilities(),
        )
    """

    def __init__(
        self,
        templates: Optional[PromptTemplates] = None,
        max_chars: int = MAX_CONTEXT_CHARS,
        default_context_messages: int = DEFAULT_CONTEXT_MESSAGES,
    ):
        """
        Args:
            templates: Prompt templates (defaults to PromptTemplates())
            max_chars: Soft character budget for the history
            default_context_messages: Minimum history size for agents that set none
        """
        self.templates = templates or PromptTemplates()
        self.max_chars = max_chars
        self.default_context_messages = default_context_messages

    def build_prompt(
        self,
        current_agent: AgentDef,
        current_agent_config: AgentConfig,
        agents: Optional[Sequence[AgentDef]],
        messages: Optional[Sequence[Any]],
        capabilities: Optional[Sequence[Any]] = None,
        trigger_message: Optional[Any] = None,
    ) -> List[PromptMessage]:
        """
        Build the prompt message list for an agent.

        Args:
            current_agent: The responding agent
            current_agent_config: Its discussion configuration
            agents: All agents, used for name resolution and the roster
            messages: Full chronological history of the discussion
            capabilities: Capabilities available to the agent's role
            trigger_message: Message that triggered the turn (unused by the window)

        Returns:
            One system message followed by the windowed history
        """
        return self.build(
            current_agent=current_agent,
            current_agent_config=current_agent_config,
            agents=agents,
            messages=messages,
            capabilities=capabilities,
            trigger_message=trigger_message,
        ).messages

    def build(
        self,
        current_agent: AgentDef,
        current_agent_config: AgentConfig,
        agents: Optional[Sequence[AgentDef]],
        messages: Optional[Sequence[Any]],
        capabilities: Optional[Sequence[Any]] = None,
        trigger_message: Optional[Any] = None,
    ) -> PromptPlan:
        """Same as build_prompt, also reporting the context window"""
        agents = list(agents or [])
        messages = list(messages or [])

        system_prompt = self._build_system_prompt(current_agent, current_agent_config, agents, capabilities)
        formatted = self._format_history(messages, current_agent_config, agents)

        window = self._compute_window(formatted, self._min_context_messages(current_agent_config))
        history = formatted[len(formatted) - window.included:] if window.included else []

        logger.debug(
            f"Prompt window for {current_agent_config.agent_id}: "
            f"{window.included}/{window.total} messages, "
            f"{window.within_budget} within {self.max_chars} chars"
        )

        return PromptPlan(
            messages=[PromptMessage(role="system", content=system_prompt)] + history,
            window=window,
        )

    def _build_system_prompt(
        self,
        agent: AgentDef,
        config: AgentConfig,
        agents: List[AgentDef],
        capabilities: Optional[Sequence[Any]],
    ) -> str:
        can_use_actions = bool(config.can_use_actions)
        segments = [
            self.templates.create_role_prompt(agent, agents),
            self.templates.generate_capability_prompt(capabilities, agent.role) if can_use_actions else "",
        ]
        return "\n\n".join(segment for segment in segments if segment)

    def _format_history(
        self,
        messages: List[Any],
        config: AgentConfig,
        agents: List[AgentDef],
    ) -> List[PromptMessage]:
        names = {}
        for agent in agents:
            # First definition wins on duplicate ids
            names.setdefault(agent.id, agent.name)

        formatted = []
        for msg in messages:
            if isinstance(msg, ActionResultMessage) or getattr(msg, "type", None) == "action_result":
                formatted.append(PromptMessage(
                    role="system",
                    content=self.templates.format_action_result(msg.results),
                ))
                continue

            agent_id = msg.agent_id
            formatted.append(PromptMessage(
                role="user",
                content=self.templates.format_message(
                    msg.content,
                    agent_id == config.agent_id,
                    names.get(agent_id, agent_id),
                ),
            ))

        return formatted

    def _compute_window(self, formatted: List[PromptMessage], min_context_messages: int) -> ContextWindow:
        total = len(formatted)

        char_count = 0
        within_budget = 0
        for entry in reversed(formatted):
            length = len(entry.content)
            if char_count + length > self.max_chars:
                break
            char_count += length
            within_budget += 1

        included = min(total, max(within_budget + 1, min_context_messages))
        included_chars = sum(len(entry.content) for entry in formatted[total - included:]) if included else 0

        return ContextWindow(
            total=total,
            within_budget=within_budget,
            min_context_messages=min_context_messages,
            included=included,
            included_chars=included_chars,
        )

    def _min_context_messages(self, config: AgentConfig) -> int:
        conversation = config.conversation
        if conversation is None or conversation.context_messages is None:
            return self.default_context_messages
        return conversation.context_messages
