"""
Tests for capabilities and action execution
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.actions import ActionExecutor, ActionParser, ActionRunner
from src.capabilities import Capability, CapabilityNotFoundError, CapabilityRegistry, default_registry
from src.capabilities.builtin import calculator, evaluate_expression, get_current_time
from src.discussion.schema import AgentDef, NormalMessage


class TestCapabilityRegistry:
    """Tests for CapabilityRegistry"""

    def setup_method(self):
        self.registry = CapabilityRegistry()

    def test_register_and_execute(self):
        """Test a registered capability can be executed by name"""
        self.registry.register(Capability(name="echo", description="Echo", execute=lambda p: p["text"]))

        assert self.registry.has("echo")
        assert "echo" in self.registry
        assert self.registry.execute("echo", {"text": "hi"}) == "hi"

    def test_unknown_capability(self):
        """Test unknown names raise CapabilityNotFoundError"""
        with pytest.raises(CapabilityNotFoundError):
            self.registry.execute("missing")

    def test_registration_order_and_replace(self):
        """Test capabilities keep registration order and can be replaced"""
        self.registry.register_all([
            Capability(name="a", description="first", execute=lambda p: 1),
            Capability(name="b", description="second", execute=lambda p: 2),
        ])
        self.registry.register(Capability(name="a", description="replaced", execute=lambda p: 3))

        names = [c.name for c in self.registry.get_capabilities()]
        assert names == ["a", "b"]
        assert self.registry.execute("a") == 3
        assert self.registry.unregister("b")
        assert not self.registry.unregister("b")
        assert len(self.registry) == 1

    def test_default_registry(self):
        """Test the built-in capabilities are available"""
        registry = default_registry()

        assert [c.name for c in registry.get_capabilities()] == ["calculator", "get_current_time"]


class TestBuiltinCapabilities:
    """Tests for the built-in capabilities"""

    def test_calculator(self):
        """Test arithmetic evaluation"""
        assert evaluate_expression("2 + 3 * 4") == 14
        assert evaluate_expression("-(2 ** 3) // 3") == -3
        assert calculator({"expression": "10 / 4"})["result"] == 2.5

    def test_calculator_rejects_code(self):
        """Test anything beyond arithmetic is refused"""
        for expression in ["__import__('os')", "a + 1", "2 ** 1000"]:
            with pytest.raises(ValueError):
                calculator({"expression": expression})

    def test_calculator_errors(self):
        """Test syntax errors, division by zero and missing input"""
        for params in [{"expression": "2 +"}, {"expression": "1 / 0"}, {}]:
            with pytest.raises(ValueError):
                calculator(params)

    def test_current_time(self):
        """Test the current time in UTC"""
        result = get_current_time({})

        assert result["timezone"] == "UTC"
        assert result["current_time"].endswith("+00:00")

    def test_current_time_unknown_zone(self):
        """Test unknown time zones are rejected"""
        with pytest.raises(ValueError):
            get_current_time({"timezone": "Mars/Olympus_Mons"})


class TestActionParser:
    """Tests for ActionParser"""

    def setup_method(self):
        self.parser = ActionParser()

    def test_no_actions(self):
        """Test plain text has no actions"""
        assert self.parser.parse("Just talking.") == []
        assert self.parser.parse("") == []

    def test_parse_actions(self):
        """Test several actions in one message"""
        content = """Let me check.
<action>{"operationId": "op-1", "capability": "calculator", "params": {"expression": "1+1"}, "description": "add"}</action>
and
<action>
```json
{"capability": "get_current_time"}
```
</action>"""
        actions = self.parser.parse(content)

        assert len(actions) == 2
        first, second = actions
        assert first.parsed.operation_id == "op-1"
        assert first.parsed.capability == "calculator"
        assert first.parsed.params == {"expression": "1+1"}
        assert first.parsed.description == "add"
        assert second.parsed.capability == "get_current_time"
        assert second.parsed.operation_id is None
        assert second.parsed.params == {}

    def test_invalid_blocks(self):
        """Test malformed blocks are reported, not raised"""
        content = "<action>not json</action><action>[1, 2]</action><action>{\"params\": {}}</action>"
        actions = self.parser.parse(content)

        assert len(actions) == 3
        assert all(a.parsed is None for a in actions)
        assert "Invalid action JSON" in actions[0].error
        assert "JSON object" in actions[1].error
        assert "capability" in actions[2].error


class TestActionRunner:
    """Tests for ActionExecutor and ActionRunner"""

    def setup_method(self):
        self.created = []
        self.registry = default_registry()

        def boom(params):
            raise RuntimeError("exploded")

        self.registry.register(Capability(name="boom", description="Always fails", execute=boom))
        self.runner = ActionRunner(create=self._create, registry=self.registry)
        self.author = AgentDef(id="host", name="Host", role="moderator")

    def _create(self, message):
        self.created.append(message)
        return message

    def _reply(self, content):
        return NormalMessage(id="reply-1", discussion_id="d1", agent_id="host", content=content)

    def test_executor_records_failures(self):
        """Test failures are recorded per action"""
        actions = ActionParser().parse(
            '<action>{"capability": "boom"}</action>'
            '<action>{"capability": "nope"}</action>'
            '<action>{"capability": "calculator", "params": {"expression": "6*7"}}</action>'
            "<action>oops</action>"
        )
        results = ActionExecutor().execute(actions, self.registry)

        assert [r.capability for r in results] == ["boom", "nope", "calculator", "unknown"]
        assert results[0].error == "exploded"
        assert "Capability not found" in results[1].error
        assert results[2].error is None
        assert results[2].result["result"] == 42
        assert results[3].error.startswith("Invalid action JSON")
        assert all(r.start_time <= r.end_time for r in results)

    def test_runner_requires_permission_and_author(self):
        """Test nothing runs without an author or permission"""
        reply = self._reply('<action>{"capability": "calculator", "params": {"expression": "1"}}</action>')

        assert self.runner.run_if_any(None, True, reply) is None
        assert self.runner.run_if_any(self.author, False, reply) is None
        assert self.created == []

    def test_runner_without_actions(self):
        """Test replies without actions produce nothing"""
        assert self.runner.run_if_any(self.author, True, self._reply("No actions here")) is None

    def test_runner_creates_result_message(self):
        """Test an action-result message is created and stored"""
        reply = self._reply(
            '<action>{"operationId": "calc", "capability": "calculator", '
            '"params": {"expression": "2+2"}, "description": "sum"}</action>'
            '<action>{"capability": "boom"}</action>'
        )
        message = self.runner.run_if_any(self.author, True, reply)

        assert message is not None
        assert self.created == [message]
        assert message.type == "action_result"
        assert message.agent_id == "system"
        assert message.discussion_id == "d1"
        assert message.origin_message_id == "reply-1"

        first, second = message.results
        assert first.operation_id == "calc"
        assert first.status == "success"
        assert first.result["result"] == 4
        assert first.description == "sum"
        assert second.operation_id == "op-1"
        assert second.status == "error"
        assert second.error == "exploded"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
