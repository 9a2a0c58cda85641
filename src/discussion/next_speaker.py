"""
Next Speaker Selection

Decides which member answers a message.
"""

from typing import Optional, Sequence

from config.settings import USER_AGENT_ID
from .mentions import MentionResolver
from .schema import AgentDef, AgentRole, Member


class NextSpeakerSelector:
    """
    Selection policy, in order:
    1. Action results go back to the agent that requested them
    2. An @mention in a text message picks the mentioned member
    3. A user message goes to the first auto-reply member, else a moderator,
       else the first member
    4. Otherwise the first auto-reply member other than the last speaker
    """

    def __init__(self, mention: Optional[MentionResolver] = None):
        self.mention = mention or MentionResolver()

    def select(
        self,
        trigger,
        last_responder: Optional[str],
        members: Sequence[Member],
        defs: Sequence[AgentDef],
    ) -> Optional[str]:
        if not members:
            return None

        if trigger.type == "action_result" and last_responder:
            if any(m.agent_id == last_responder for m in members):
                return last_responder

        if trigger.type == "text":
            self.mention.feed(trigger)
            target = self.mention.take_next(members, defs)
            if target:
                return target

        autos = [m for m in members if m.is_auto_reply]

        if trigger.agent_id == USER_AGENT_ID:
            if autos:
                return autos[0].agent_id
            roles = {a.id: a.role for a in defs}
            moderator = next((m for m in members if roles.get(m.agent_id) == AgentRole.MODERATOR), None)
            return moderator.agent_id if moderator else members[0].agent_id

        following = next((m for m in autos if m.agent_id != trigger.agent_id), None)
        return following.agent_id if following else None
