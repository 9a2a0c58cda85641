"""
Prompt Templates

Text blocks used to assemble an agent's prompt: the role prompt, the
capability prompt and the renderings of history messages.
"""

import json
from typing import Any, Iterable, List, Optional, Sequence

from config.settings import ROLE_LABELS
from ..discussion.schema import ActionResultItem, AgentDef, AgentRole


class PromptTemplates:
    """
    Prompt templates for discussion agents.
    """

    ROLE_HEADER = """You are "{name}", acting as the {role_label} of a multi-agent discussion."""

    MODERATOR_GUIDELINES = """## Your Responsibilities

1. **Steer the Discussion**: Keep the conversation on topic and moving toward a conclusion.
2. **Invite Voices**: Ask specific participants for input with @Name when their expertise is needed.
3. **Summarize**: Periodically consolidate agreements and open questions.
4. **Resolve Conflict**: When participants disagree, surface the core of the disagreement.
5. **Close Out**: Propose a conclusion once the question has been answered."""

    PARTICIPANT_GUIDELINES = """## Your Responsibilities

1. **Contribute Expertise**: Answer from your own perspective and field.
2. **Engage Others**: Build on, question or challenge what other agents said.
3. **Stay in Character**: Keep your personality and response style consistent.
4. **Be Concise**: Add something new in every reply instead of repeating earlier points."""

    CONVENTIONS = """## Conversation Format

- Messages in the history are prefixed with the speaker, e.g. `[Name]: ...`.
- Your own earlier messages are prefixed with `[You]`.
- Reply with your message content only; do not add a speaker prefix."""

    CAPABILITY_HEADER = """## Available Actions

You may call the following actions while replying:"""

    CAPABILITY_USAGE = """## Calling an Action

Wrap each call in an `<action>` tag holding a single JSON object:

<action>
{{
  "operationId": "op-1",
  "capability": "<action name>",
  "params": {{}},
  "description": "why you are calling it"
}}
</action>

- Use a distinct operationId for every call in one reply.
- Results come back as a system message in the next turn; do not invent them.
{role_note}"""

    MODERATOR_ACTION_NOTE = "- As moderator, prefer actions that help the whole group move forward."
    PARTICIPANT_ACTION_NOTE = "- Only call actions that support your own contribution."

    def create_role_prompt(self, agent: AgentDef, agents: Optional[Iterable[AgentDef]] = None) -> str:
        """
        Build the persona and roster section of the system prompt.

        Args:
            agent: The responding agent
            agents: All agents of the discussion (the responder may be included)

        Returns:
            Role prompt text (never empty)
        """
        role = _role_value(agent.role)
        sections = [
            self.ROLE_HEADER.format(name=agent.name, role_label=ROLE_LABELS.get(role, role)),
        ]

        if agent.prompt and agent.prompt.strip():
            sections.append(agent.prompt.strip())

        profile = self._format_profile(agent)
        if profile:
            sections.append(f"## Your Profile\n{profile}")

        others = [a for a in (agents or []) if a.id != agent.id]
        sections.append(f"## Participants\n{self._format_roster(others)}")

        guidelines = self.MODERATOR_GUIDELINES if role == AgentRole.MODERATOR.value else self.PARTICIPANT_GUIDELINES
        sections.append(guidelines)
        sections.append(self.CONVENTIONS)

        return "\n\n".join(sections)

    def generate_capability_prompt(self, capabilities: Optional[Sequence[Any]], role: Any = None) -> str:
        """
        Describe the capabilities an agent may call.

        Args:
            capabilities: Objects exposing `name` and `description`
            role: Role of the responding agent

        Returns:
            Capability prompt text, or an empty string when there is nothing to offer
        """
        if not capabilities:
            return ""

        lines = [self.CAPABILITY_HEADER]
        for capability in capabilities:
            description = (getattr(capability, "description", "") or "").strip()
            line = f"- **{capability.name}**"
            if description:
                line += f": {description}"
            lines.append(line)

        role_note = (
            self.MODERATOR_ACTION_NOTE
            if _role_value(role) == AgentRole.MODERATOR.value
            else self.PARTICIPANT_ACTION_NOTE
        )
        return "\n".join(lines) + "\n\n" + self.CAPABILITY_USAGE.format(role_note=role_note)

    def format_action_result(self, results: Optional[List[ActionResultItem]]) -> str:
        """Render action results as a system message"""
        if not results:
            return "[Action Results]\nNo actions were executed."

        blocks = ["[Action Results]"]
        for item in results:
            header = f"- {item.operation_id} `{item.capability}` ({item.status})"
            if item.description:
                header += f": {item.description}"
            lines = [header]

            if item.params:
                lines.append(f"  Params: {_to_json(item.params)}")

            if item.status == "error":
                lines.append(f"  Error: {item.error or 'unknown error'}")
            else:
                lines.append(f"  Result: {_to_json(item.result)}")

            blocks.append("\n".join(lines))

        return "\n".join(blocks)

    def format_message(self, content: str, is_self: bool, agent_name: str) -> str:
        """Prefix a chat message with its speaker"""
        speaker = "You" if is_self else agent_name
        return f"[{speaker}]: {content}"

    def _format_profile(self, agent: AgentDef) -> str:
        lines = []
        if agent.personality:
            lines.append(f"- Personality: {agent.personality}")
        if agent.expertise:
            lines.append(f"- Expertise: {', '.join(agent.expertise)}")
        if agent.bias:
            lines.append(f"- Bias: {agent.bias}")
        if agent.response_style:
            lines.append(f"- Response style: {agent.response_style}")
        return "\n".join(lines)

    def _format_roster(self, others: List[AgentDef]) -> str:
        if not others:
            return "You are the only agent in this discussion. The user may join at any time."

        lines = []
        for other in others:
            role = _role_value(other.role)
            line = f"- **{other.name}** ({ROLE_LABELS.get(role, role)})"
            if other.expertise:
                line += f": {', '.join(other.expertise[:5])}"
            lines.append(line)
        return "\n".join(lines)


def _role_value(role: Any) -> str:
    if isinstance(role, AgentRole):
        return role.value
    return str(role) if role is not None else ""


def _to_json(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


_default = PromptTemplates()


def create_role_prompt(agent: AgentDef, agents: Optional[Iterable[AgentDef]] = None) -> str:
    return _default.create_role_prompt(agent, agents)


def generate_capability_prompt(capabilities: Optional[Sequence[Any]], role: Any = None) -> str:
    return _default.generate_capability_prompt(capabilities, role)


def format_action_result(results: Optional[List[ActionResultItem]]) -> str:
    return _default.format_action_result(results)


def format_message(content: str, is_self: bool, agent_name: str) -> str:
    return _default.format_message(content, is_self, agent_name)
