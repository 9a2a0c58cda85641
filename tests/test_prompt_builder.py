"""
Tests for the prompt builder context window
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.context.builder import PromptBuilder, MAX_CONTEXT_CHARS, DEFAULT_CONTEXT_MESSAGES
from src.context.prompts import PromptTemplates
from src.capabilities import default_registry
from src.discussion.schema import (
    ActionResultItem,
    ActionResultMessage,
    AgentConfig,
    AgentDef,
    ConversationSettings,
    NormalMessage,
)

# "[user]: " prefix added to messages from the user
USER_PREFIX = len("[user]: ")


def make_agents():
    return [
        AgentDef(id="host", name="Host", role="moderator", expertise=["facilitation"]),
        AgentDef(id="critic", name="Critic", role="participant", expertise=["risk"]),
    ]


def user_message(content, index=0):
    return NormalMessage(id=f"m{index}", discussion_id="d1", agent_id="user", content=content)


def sized_messages(count, formatted_length):
    """User messages whose formatted length is exactly formatted_length"""
    body = "x" * (formatted_length - USER_PREFIX)
    return [user_message(body, i) for i in range(count)]


class TestPromptBuilder:
    """Tests for PromptBuilder"""

    def setup_method(self):
        self.builder = PromptBuilder()
        self.agents = make_agents()
        self.agent = self.agents[1]
        self.config = AgentConfig.from_agent(self.agent)

    def build(self, messages, config=None, capabilities=None, agents=None):
        return self.builder.build(
            current_agent=self.agent,
            current_agent_config=config or self.config,
            agents=self.agents if agents is None else agents,
            messages=messages,
            capabilities=capabilities,
        )

    def test_defaults(self):
        """Test the documented window defaults"""
        assert MAX_CONTEXT_CHARS == 20000
        assert DEFAULT_CONTEXT_MESSAGES == 10
        assert self.builder.max_chars == 20000

    def test_empty_history(self):
        """Test that an empty history yields only the system message"""
        plan = self.build([])

        assert len(plan.messages) == 1
        assert plan.messages[0].role == "system"
        assert plan.window.total == 0
        assert plan.window.included == 0

    def test_none_history_and_agents(self):
        """Test that missing collections are treated as empty"""
        messages = self.builder.build_prompt(
            current_agent=self.agent,
            current_agent_config=self.config,
            agents=None,
            messages=None,
        )

        assert len(messages) == 1
        assert messages[0].role == "system"
        assert messages[0].content

    def test_short_history_fully_included(self):
        """Test five short messages are all included"""
        history = [user_message("0123456789", i) for i in range(5)]
        plan = self.build(history)

        assert plan.window.within_budget == 5
        assert plan.window.included == 5
        assert len(plan.messages) == 6

    def test_one_past_budget_included(self):
        """Test the message just past the budget is still included"""
        history = sized_messages(15, 1600)
        plan = self.build(history)

        assert plan.window.total == 15
        assert plan.window.within_budget == 12
        assert plan.window.included == 13
        assert len(plan.messages) == 14
        assert plan.messages[1].content == self.builder.templates.format_message(history[2].content, False, "user")
        assert plan.window.included_chars > MAX_CONTEXT_CHARS

    def test_minimum_wins_over_budget(self):
        """Test oversized messages are included up to the minimum count"""
        history = [user_message("y" * 100000, i) for i in range(3)]
        plan = self.build(history)

        assert plan.window.within_budget == 0
        assert plan.window.included == 3
        assert len(plan.messages) == 4

    def test_single_oversized_message_with_zero_minimum(self):
        """Test the extra message is kept even when nothing fits"""
        config = AgentConfig.from_agent(self.agent, conversation=ConversationSettings(context_messages=0))
        history = [user_message("z" * 30000)]
        plan = self.build(history, config=config)

        assert plan.window.within_budget == 0
        assert plan.window.included == 1

    def test_custom_minimum(self):
        """Test the configured minimum replaces the default of 10"""
        config = AgentConfig.from_agent(self.agent, conversation=ConversationSettings(context_messages=2))
        history = sized_messages(20, 1600)
        plan = self.build(history, config=config)

        assert plan.window.min_context_messages == 2
        assert plan.window.included == 13

        config = AgentConfig.from_agent(self.agent, conversation=ConversationSettings(context_messages=18))
        plan = self.build(history, config=config)
        assert plan.window.included == 18

    def test_inclusion_formula(self):
        """Test included == min(N, max(within + 1, M)) across sizes"""
        for count in [0, 1, 5, 11, 25]:
            for length in [50, 1600, 25000]:
                for minimum in [0, 3, 10, 40]:
                    config = AgentConfig.from_agent(
                        self.agent, conversation=ConversationSettings(context_messages=minimum)
                    )
                    plan = self.build(sized_messages(count, length), config=config)
                    window = plan.window
                    expected = min(count, max(window.within_budget + 1, minimum))
                    assert window.included == expected
                    assert window.included <= count
                    assert len(plan.messages) == window.included + 1

    def test_chronological_order_preserved(self):
        """Test history keeps its original order"""
        history = [user_message(f"message {i}", i) for i in range(8)]
        messages = self.builder.build_prompt(
            current_agent=self.agent,
            current_agent_config=self.config,
            agents=self.agents,
            messages=history,
        )

        contents = [m.content for m in messages[1:]]
        assert contents == [f"[user]: message {i}" for i in range(8)]

    def test_longer_newest_message_never_increases_budget_count(self):
        """Test growing the newest message cannot raise the budget count"""
        previous = None
        for size in [10, 1000, 5000, 15000, 19000, 25000]:
            history = sized_messages(10, 1500)
            history[-1] = user_message("n" * size, 99)
            within = self.build(history).window.within_budget
            if previous is not None:
                assert within <= previous
            previous = within

    def test_scan_stops_at_first_overflow(self):
        """Test the scan does not skip an oversized message to count older ones"""
        history = [user_message("a", 0), user_message("b" * 30000, 1), user_message("c", 2)]
        config = AgentConfig.from_agent(self.agent, conversation=ConversationSettings(context_messages=0))
        plan = self.build(history, config=config)

        assert plan.window.within_budget == 1
        assert plan.window.included == 2

    def test_action_result_becomes_system(self):
        """Test action results are rendered as system messages"""
        results = [ActionResultItem(
            operation_id="op-1",
            capability="calculator",
            params={"expression": "1 + 1"},
            status="success",
            result={"result": 2},
        )]
        history = [
            user_message("compute please", 0),
            ActionResultMessage(id="r1", discussion_id="d1", results=results),
        ]
        messages = self.builder.build_prompt(
            current_agent=self.agent,
            current_agent_config=self.config,
            agents=self.agents,
            messages=history,
        )

        assert [m.role for m in messages] == ["system", "user", "system"]
        assert messages[2].content == PromptTemplates().format_action_result(results)

    def test_unknown_agent_uses_raw_id(self):
        """Test unknown authors fall back to their id"""
        history = [NormalMessage(discussion_id="d1", agent_id="ghost-agent", content="boo")]
        messages = self.builder.build_prompt(
            current_agent=self.agent,
            current_agent_config=self.config,
            agents=self.agents,
            messages=history,
        )

        assert messages[1].content == "[ghost-agent]: boo"

    def test_own_and_other_messages(self):
        """Test own messages are marked and others carry the speaker name"""
        history = [
            NormalMessage(discussion_id="d1", agent_id="host", content="Opening"),
            NormalMessage(discussion_id="d1", agent_id="critic", content="Objection"),
        ]
        messages = self.build(history).messages

        assert messages[1].content == "[Host]: Opening"
        assert messages[2].content == "[You]: Objection"

    def test_capability_prompt_only_when_allowed(self):
        """Test capabilities are described only to agents allowed to use them"""
        capabilities = default_registry().get_capabilities()

        denied = self.build([], capabilities=capabilities).messages[0].content
        assert "Available Actions" not in denied
        assert "calculator" not in denied

        config = AgentConfig.from_agent(self.agent, can_use_actions=True)
        allowed = self.build([], config=config, capabilities=capabilities).messages[0].content
        assert "Available Actions" in allowed
        assert "calculator" in allowed
        assert "get_current_time" in allowed

        role_prompt = PromptTemplates().create_role_prompt(self.agent, self.agents)
        assert allowed.startswith(role_prompt + "\n\n")

    def test_allowed_without_capabilities(self):
        """Test the capability segment is dropped when there are none"""
        config = AgentConfig.from_agent(self.agent, can_use_actions=True)
        system = self.build([], config=config, capabilities=[]).messages[0].content

        assert system == PromptTemplates().create_role_prompt(self.agent, self.agents)

    def test_idempotent(self):
        """Test identical inputs give identical output"""
        history = sized_messages(12, 1800)
        first = [m.model_dump() for m in self.build(history).messages]
        second = [m.model_dump() for m in self.build(history).messages]

        assert first == second

    def test_inputs_not_mutated(self):
        """Test the history list is left untouched"""
        history = sized_messages(4, 100)
        snapshot = [m.model_dump() for m in history]
        self.build(history)

        assert [m.model_dump() for m in history] == snapshot
        assert len(history) == 4

    def test_builder_default_minimum(self):
        """Test the builder's default minimum applies only to agents without one"""
        builder = PromptBuilder(default_context_messages=3)
        history = [user_message("w" * 30000, i) for i in range(6)]

        plan = builder.build(
            current_agent=self.agent,
            current_agent_config=self.config,
            agents=self.agents,
            messages=history,
        )
        assert plan.window.min_context_messages == 3
        assert plan.window.included == 3

        config = AgentConfig.from_agent(self.agent, conversation=ConversationSettings(context_messages=5))
        plan = builder.build(
            current_agent=self.agent,
            current_agent_config=config,
            agents=self.agents,
            messages=history,
        )
        assert plan.window.included == 5

    def test_custom_budget(self):
        """Test a smaller character budget"""
        builder = PromptBuilder(max_chars=250)
        config = AgentConfig.from_agent(self.agent, conversation=ConversationSettings(context_messages=1))
        plan = builder.build(
            current_agent=self.agent,
            current_agent_config=config,
            agents=self.agents,
            messages=sized_messages(6, 100),
        )

        assert plan.window.within_budget == 2
        assert plan.window.included == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
