"""
Built-in capabilities available to every discussion.
"""

import ast
import operator
from datetime import datetime, timezone
from typing import Any, Dict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .registry import Capability, CapabilityRegistry

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

MAX_EXPONENT = 100


def evaluate_expression(expression: str) -> float:
    """Evaluate an arithmetic expression without running arbitrary code"""
    tree = ast.parse(expression, mode="eval")
    return _eval_node(tree.body)


def _eval_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ValueError(f"Exponent too large: {right}")
        return _BINARY_OPS[type(node.op)](left, right)

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))

    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def calculator(params: Dict[str, Any]) -> Dict[str, Any]:
    expression = str(params.get("expression", "")).strip()
    if not expression:
        raise ValueError("Missing 'expression' parameter")

    try:
        result = evaluate_expression(expression)
    except (SyntaxError, ZeroDivisionError) as e:
        raise ValueError(f"Cannot evaluate '{expression}': {e}") from e

    return {
        "expression": expression,
        "result": result,
        "message": f"{expression} = {result}",
    }


def get_current_time(params: Dict[str, Any]) -> Dict[str, Any]:
    tz_name = params.get("timezone") or "UTC"
    try:
        tz = timezone.utc if tz_name == "UTC" else ZoneInfo(tz_name)
    except ZoneInfoNotFoundError as e:
        raise ValueError(f"Unknown timezone: {tz_name}") from e

    now = datetime.now(tz)
    return {
        "current_time": now.isoformat(timespec="seconds"),
        "timezone": tz_name,
        "message": f"Current time in {tz_name}: {now.strftime('%Y-%m-%d %H:%M:%S')}",
    }


BUILTIN_CAPABILITIES = [
    Capability(
        name="calculator",
        description="Evaluate an arithmetic expression. Params: {\"expression\": \"2 + 3 * 4\"}",
        execute=calculator,
        module="builtin",
    ),
    Capability(
        name="get_current_time",
        description="Get the current date and time. Params: {\"timezone\": \"Europe/Berlin\"} (optional, default UTC)",
        execute=get_current_time,
        module="builtin",
    ),
]


def default_registry() -> CapabilityRegistry:
    """Create a registry holding the built-in capabilities"""
    return CapabilityRegistry(BUILTIN_CAPABILITIES)
