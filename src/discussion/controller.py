"""
Discussion Controller

Runs the turn-taking loop of a discussion: pick the next speaker, build
its prompt, generate the reply and run any actions it requested, until
nobody is left to answer or the round limit is reached.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from config.settings import SYSTEM_AGENT_ID
from ..actions.runner import ActionRunner
from ..capabilities.registry import CapabilityRegistry
from ..context.builder import PromptBuilder
from .errors import DiscussionError, DiscussionErrorType, handle_discussion_error
from .mentions import MentionResolver
from .next_speaker import NextSpeakerSelector
from .schema import (
    AgentConfig,
    AgentDef,
    AgentRole,
    DiscussionSettings,
    Member,
    MessageStatus,
    NormalMessage,
    PromptMessage,
)
from .store import MessageStore

logger = logging.getLogger(__name__)


class ChatModel(Protocol):
    def chat(self, messages: Sequence[PromptMessage], temperature: float = 0.7) -> str:
        ...


@dataclass(frozen=True)
class Snapshot:
    is_running: bool
    current_speaker_id: Optional[str]
    processed: int
    round_limit: int


class DiscussionController:
    """
    Orchestrates one discussion at a time.

    Calls to `process` are serialized; a second call waits for the running
    loop to finish. Errors are logged, passed to the registered error
    listeners, pause the discussion and are re-raised as DiscussionError.
    A reply that finishes after `pause()` was called is kept, its actions
    are skipped and the loop stops with an `abort` error that is not raised.

    Usage:
        controller = DiscussionController(store, llm, registry)
        controller.set_agents(agents)
        controller.set_current_discussion_id("d-1")
        controller.set_members([Member(agent_id="mod", is_auto_reply=True)])
        controller.process(user_message)
    """

    def __init__(
        self,
        store: MessageStore,
        llm: ChatModel,
        registry: CapabilityRegistry,
        builder: Optional[PromptBuilder] = None,
        settings: Optional[DiscussionSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.llm = llm
        self.registry = registry
        self.builder = builder or PromptBuilder()
        self.settings = settings or DiscussionSettings()
        self._sleep = sleep

        self.mention = MentionResolver()
        self.selector = NextSpeakerSelector(self.mention)
        self.actions = ActionRunner(create=store.create_message, registry=registry)

        self.agents: List[AgentDef] = []
        self.discussion_id: Optional[str] = None
        self.members: List[Member] = []
        self.is_running = False
        self.processed = 0
        self.round_limit = self._round_limit_for(self.settings)
        self.current_speaker_id: Optional[str] = None

        self._run_lock = threading.Lock()
        self._error_listeners: List[Callable[[DiscussionError], None]] = []

    # ====================
    # State
    # ====================

    def get_snapshot(self) -> Snapshot:
        return Snapshot(
            is_running=self.is_running,
            current_speaker_id=self.current_speaker_id,
            processed=self.processed,
            round_limit=self.round_limit,
        )

    def is_paused(self) -> bool:
        return not self.is_running

    def set_current_discussion_id(self, discussion_id: Optional[str]) -> None:
        if self.discussion_id == discussion_id:
            return
        self.discussion_id = discussion_id
        self.round_limit = self._round_limit_for(self.settings)
        logger.info(f"Current discussion: {discussion_id}")

    def set_members(self, members: Sequence[Member]) -> None:
        self.members = list(members)

    def set_agents(self, agents: Sequence[AgentDef]) -> None:
        self.agents = list(agents)

    def set_settings(self, patch: Dict[str, Any]) -> DiscussionSettings:
        """Merge a partial settings update"""
        merged = {**self.settings.model_dump(), **patch}
        self.settings = DiscussionSettings(**merged)
        self.round_limit = self._round_limit_for(self.settings)
        return self.settings

    def on_error(self, listener: Callable[[DiscussionError], None]) -> Callable[[], None]:
        """Register an error listener; returns a function that removes it"""
        self._error_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return unsubscribe

    def agent_can_use_actions(self, agent: Optional[AgentDef]) -> bool:
        if agent is None:
            return False
        role = agent.role.value if isinstance(agent.role, AgentRole) else str(agent.role)
        allowed = getattr(self.settings.tool_permissions, role, None)
        if isinstance(allowed, bool):
            return allowed
        return role == AgentRole.MODERATOR.value

    # ====================
    # Runtime
    # ====================

    def pause(self) -> None:
        self.is_running = False
        self.current_speaker_id = None

    def resume(self) -> None:
        self.is_running = True
        self.processed = 0

    def start_if_eligible(self) -> bool:
        if not self.is_paused():
            return True
        if not self.members:
            return False
        self.is_running = True
        self.processed = 0
        return True

    def process(self, message) -> None:
        """
        Answer a message and keep the discussion going.

        Args:
            message: The message that starts the round loop (already stored)

        Raises:
            DiscussionError: if no discussion is selected or a turn fails
                (not for turns aborted by pause)
        """
        with self._run_lock:
            try:
                if not self.discussion_id:
                    raise DiscussionError(DiscussionErrorType.NO_DISCUSSION, "No discussion selected")
                if self.is_paused() and not self.start_if_eligible():
                    logger.info("Discussion has no members, nothing to process")
                    return
                self._process_internal(message)
            except Exception as e:
                error = self._handle_error(e, "Failed to process message")
                if error.type == DiscussionErrorType.ABORT:
                    return
                if error is e:
                    raise
                raise error from e

    def _process_internal(self, trigger) -> None:
        if not self.is_running:
            self.resume()

        last = trigger
        last_responder: Optional[str] = None
        self.processed = 0

        while self.is_running and self.processed < self.round_limit and last is not None:
            next_id = self.selector.select(last, last_responder, self.members, self.agents)
            if not next_id:
                break
            response = self._generate_response(next_id, last)
            if response is None:
                break
            last_responder = next_id
            last = response
            self.processed += 1

        if self.processed >= self.round_limit:
            limit = self.round_limit
            self._add_system_message(f"Reached the message limit ({limit}); the discussion has been paused.")
            logger.info(f"Round limit {limit} reached in discussion {self.discussion_id}")
            self.pause()

    def _generate_response(self, agent_id: str, trigger):
        current = self._find_agent(agent_id)
        if current is None:
            logger.warning(f"Selected speaker {agent_id} has no agent definition")
            return None

        member_defs = [a for a in (self._find_agent(m.agent_id) for m in self.members) if a is not None]
        can_use_actions = self.agent_can_use_actions(current)
        self.current_speaker_id = agent_id

        try:
            self._wait_before_reply(current)
            final = self._respond(current, agent_id, trigger, member_defs, can_use_actions)
            if not self.is_running:
                raise DiscussionError(
                    DiscussionErrorType.ABORT,
                    "Discussion paused while replying",
                    context={"agent_id": agent_id, "message_id": final.id},
                )
            if can_use_actions:
                action_result = self.actions.run_if_any(current, can_use_actions, final)
                if action_result is not None:
                    final = action_result
        except DiscussionError:
            raise
        except Exception as e:
            raise DiscussionError(
                DiscussionErrorType.GENERATE_RESPONSE,
                "Failed to generate a reply",
                e,
                {"agent_id": agent_id},
            ) from e
        finally:
            self.current_speaker_id = None

        return final

    def _respond(
        self,
        agent: AgentDef,
        agent_id: str,
        trigger,
        members: List[AgentDef],
        can_use_actions: bool,
    ) -> NormalMessage:
        history = self.store.list_messages(self.discussion_id)
        config = AgentConfig.from_agent(agent, agent_id=agent_id, can_use_actions=can_use_actions)
        prompt = self.builder.build_prompt(
            current_agent=agent,
            current_agent_config=config,
            agents=members,
            messages=history,
            capabilities=self.registry.get_capabilities(),
            trigger_message=trigger if trigger.type == "text" else None,
        )

        created = self.store.create_message(NormalMessage(
            discussion_id=self.discussion_id,
            agent_id=agent_id,
            content="",
            status=MessageStatus.STREAMING,
        ))
        logger.info(f"{agent.name} is replying in {self.discussion_id} ({len(prompt)} prompt messages)")

        try:
            content = self.llm.chat(prompt, temperature=self.settings.temperature)
        except Exception:
            self.store.update_message(created.id, status=MessageStatus.ERROR)
            raise

        return self.store.update_message(created.id, content=content, status=MessageStatus.COMPLETED)

    def _wait_before_reply(self, agent: AgentDef) -> None:
        delay = agent.conversation.min_response_delay if agent.conversation else None
        if delay:
            self._sleep(delay / 1000)

    def _add_system_message(self, content: str) -> None:
        if not self.discussion_id:
            return
        self.store.create_message(NormalMessage(
            discussion_id=self.discussion_id,
            agent_id=SYSTEM_AGENT_ID,
            content=content,
        ))

    def _find_agent(self, agent_id: str) -> Optional[AgentDef]:
        return next((a for a in self.agents if a.id == agent_id), None)

    def _handle_error(self, error: Exception, message: str, context: Optional[Dict[str, Any]] = None) -> DiscussionError:
        if isinstance(error, DiscussionError):
            discussion_error = error
        else:
            discussion_error = DiscussionError(DiscussionErrorType.UNKNOWN, message, error, context)

        handling = handle_discussion_error(discussion_error)
        if handling.should_pause:
            self.pause()

        for listener in list(self._error_listeners):
            listener(discussion_error)

        return discussion_error

    @staticmethod
    def _round_limit_for(settings: DiscussionSettings) -> int:
        return max(1, int(settings.max_rounds or 0) or 1)
