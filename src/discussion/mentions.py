"""
Mention Resolver

Finds @mentions in a message and resolves them to discussion members:
1. Slug match on the first token of the mention
2. Name prefix match followed by a word boundary
"""

import re
from typing import List, Optional, Sequence

from .schema import AgentDef, Member, NormalMessage

_STOP = r"\s@，。,！？!?:：；;"

MENTION_PATTERN = re.compile(
    r"@(?:"
    r'"([^"]+)"'
    r"|'([^']+)'"
    r"|“([^”]+)”"
    r"|‘([^’]+)’"
    r"|「([^」]+)」"
    r"|『([^』]+)』"
    r"|（([^）]+)）"
    r"|【([^】]+)】"
    r"|《([^》]+)》"
    r"|〈([^〉]+)〉"
    rf"|([^{_STOP}]+(?:\s+[^{_STOP}]+)*)"
    r")",
    re.IGNORECASE,
)

_LEADING_QUOTES = re.compile(r"^[\"'“”‘’「」『』【】《》〈〉（）()]+")
_TRAILING_NOISE = re.compile(r"[\"'“”‘’「」『』【】《》〈〉（）()\s，。,！？!?:：；;、]+$")
_MULTI_SPACE = re.compile(r"\s{2,}")
_BOUNDARY = re.compile(r"\s|[，。,！？!?:：；;、]")


class MentionResolver:
    """
    Keeps a queue of mention targets for the message being answered.

    Feeding the same message twice does not re-parse it while targets are
    still pending, so a message mentioning several agents hands the turn to
    each of them in order.

    Usage:
        resolver = MentionResolver()
        resolver.feed(message)
        agent_id = resolver.take_next(members, agents)
    """

    def __init__(self):
        self.pending: List[str] = []
        self.source_id: Optional[str] = None

    def feed(self, trigger) -> None:
        if getattr(trigger, "type", None) != "text":
            return

        if self.source_id == trigger.id and self.pending:
            return

        mentions = [
            target for target in (self.normalize_target(m) for m in self.extract_mentions(trigger.content))
            if target
        ]

        if mentions:
            self.pending = mentions
            self.source_id = trigger.id
        elif self.source_id == trigger.id:
            self.pending = []
            self.source_id = None

    def take_next(self, members: Sequence[Member], defs: Sequence[AgentDef]) -> Optional[str]:
        if not self.pending:
            return None

        member_ids = {m.agent_id for m in members}

        while self.pending:
            target = self.pending.pop(0)
            target_lower = target.lower()
            first_token = target_lower.split()[0] if target_lower.split() else target_lower

            by_slug = next((a for a in defs if a.slug and a.slug.lower() == first_token), None)
            if by_slug and by_slug.id in member_ids:
                if not self.pending:
                    self.source_id = None
                return by_slug.id

            by_name = next((a for a in defs if self._name_matches(a.name, target_lower)), None)
            if by_name and by_name.id in member_ids:
                if not self.pending:
                    self.source_id = None
                return by_name.id

        self.source_id = None
        return None

    @staticmethod
    def extract_mentions(content: Optional[str]) -> List[str]:
        if not content:
            return []
        results = []
        for match in MENTION_PATTERN.finditer(content):
            candidate = next((g for g in match.groups() if g), None)
            if candidate:
                results.append(candidate)
        return results

    @staticmethod
    def normalize_target(target: Optional[str]) -> Optional[str]:
        if not target:
            return None
        cleaned = _LEADING_QUOTES.sub("", target.strip())
        cleaned = _TRAILING_NOISE.sub("", cleaned)
        cleaned = _MULTI_SPACE.sub(" ", cleaned).strip()
        return cleaned or None

    @staticmethod
    def _name_matches(name: str, target_lower: str) -> bool:
        name_lower = name.lower()
        if not name_lower or not target_lower.startswith(name_lower):
            return False
        next_char = target_lower[len(name_lower):len(name_lower) + 1]
        return not next_char or bool(_BOUNDARY.match(next_char))
