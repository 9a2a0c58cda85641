"""
Action Runner

Turns the actions found in an agent reply into an action-result message.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from config.settings import SYSTEM_AGENT_ID
from ..capabilities.registry import CapabilityRegistry
from ..discussion.schema import ActionResultItem, ActionResultMessage, AgentDef, NormalMessage
from .executor import ActionExecutor
from .parser import ActionParser

logger = logging.getLogger(__name__)


class ActionRunner:
    """
    Parses, executes and records the actions of an agent message.

    Usage:
        runner = ActionRunner(create=store.create_message, registry=registry)
        result_message = runner.run_if_any(author, can_use_actions=True, agent_message=reply)
    """

    def __init__(
        self,
        create: Callable[[ActionResultMessage], ActionResultMessage],
        registry: CapabilityRegistry,
        parser: Optional[ActionParser] = None,
        executor: Optional[ActionExecutor] = None,
    ):
        self.create = create
        self.registry = registry
        self.parser = parser or ActionParser()
        self.executor = executor or ActionExecutor()

    def run_if_any(
        self,
        author: Optional[AgentDef],
        can_use_actions: bool,
        agent_message: NormalMessage,
    ) -> Optional[ActionResultMessage]:
        """
        Run the actions of a message.

        Returns:
            The stored action-result message, or None when nothing ran
        """
        if author is None or not can_use_actions:
            return None

        parsed = self.parser.parse(agent_message.content)
        if not parsed:
            return None

        logger.info(f"Running {len(parsed)} action(s) from {author.name}")
        results = self.executor.execute(parsed, self.registry)

        items = []
        for i, r in enumerate(results):
            definition = parsed[i].parsed
            items.append(ActionResultItem(
                operation_id=(definition.operation_id if definition else None) or f"op-{i}",
                capability=r.capability,
                params=r.params or {},
                status="error" if r.error else "success",
                result=r.result,
                description=definition.description if definition else "",
                error=r.error,
                start_time=r.start_time,
                end_time=r.end_time,
            ))

        message = ActionResultMessage(
            discussion_id=agent_message.discussion_id,
            agent_id=SYSTEM_AGENT_ID,
            timestamp=datetime.now(timezone.utc),
            origin_message_id=agent_message.id,
            results=items,
        )
        return self.create(message)
