"""
Action Parser

Extracts the `<action>` calls an agent placed in its reply.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ActionDef:
    """A single action call requested by an agent"""
    capability: str
    params: Dict[str, Any] = field(default_factory=dict)
    operation_id: Optional[str] = None
    description: str = ""


@dataclass
class ParsedAction:
    """Raw action block and its parse outcome"""
    raw: str
    parsed: Optional[ActionDef] = None
    error: Optional[str] = None


class ActionParser:
    """
    Parses action blocks out of a message.

    Usage:
        parser = ActionParser()
        actions = parser.parse('<action>{"capability": "calculator", "params": {"expression": "1+1"}}</action>')
    """

    ACTION_PATTERN = re.compile(r"<action>(.*?)</action>", re.DOTALL | re.IGNORECASE)

    # Models sometimes fence the JSON inside the tag
    FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)

    def parse(self, content: Optional[str]) -> List[ParsedAction]:
        if not content:
            return []

        actions = []
        for match in self.ACTION_PATTERN.finditer(content):
            raw = match.group(1).strip()
            actions.append(self._parse_block(raw))
        return actions

    def _parse_block(self, raw: str) -> ParsedAction:
        body = raw
        fenced = self.FENCE_PATTERN.match(body)
        if fenced:
            body = fenced.group(1)

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            return ParsedAction(raw=raw, error=f"Invalid action JSON: {e.msg}")

        if not isinstance(data, dict):
            return ParsedAction(raw=raw, error="Action must be a JSON object")

        capability = data.get("capability") or data.get("name")
        if not capability or not isinstance(capability, str):
            return ParsedAction(raw=raw, error="Action is missing 'capability'")

        params = data.get("params", {})
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return ParsedAction(raw=raw, error="Action 'params' must be an object")

        operation_id = data.get("operationId") or data.get("operation_id")
        return ParsedAction(
            raw=raw,
            parsed=ActionDef(
                capability=capability,
                params=params,
                operation_id=str(operation_id) if operation_id is not None else None,
                description=str(data.get("description") or ""),
            ),
        )
