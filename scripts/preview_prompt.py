#!/usr/bin/env python3
"""
Prompt Preview Script

Builds the prompt an agent would receive for a saved discussion.

Usage:
    # Preview the prompt of the first agent in the file
    python scripts/preview_prompt.py data/sample_discussion.json

    # Pick the agent and the minimum context size
    python scripts/preview_prompt.py data/sample_discussion.json --agent critic --context-messages 4

    # Also send the prompt to the LLM
    python scripts/preview_prompt.py data/sample_discussion.json --run
"""

import sys
import json
import argparse
from pathlib import Path
from typing import List

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.markdown import Markdown
from rich.table import Table
from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

# Load environment variables
load_dotenv()

from config.settings import get_settings
from src.capabilities import default_registry
from src.context.builder import PromptBuilder, PromptPlan
from src.discussion.schema import AgentConfig, AgentDef, AgentMessage, ConversationSettings
from src.llm.claude import ClaudeClient

console = Console()

_messages_adapter = TypeAdapter(List[AgentMessage])


def load_discussion(path: Path):
    """Load agents and messages from a discussion JSON file"""
    data = json.loads(path.read_text(encoding="utf-8"))

    discussion_id = data.get("discussion_id", path.stem)
    raw_messages = data.get("messages") or []
    for message in raw_messages:
        message.setdefault("discussion_id", discussion_id)

    agents = [AgentDef(**a) for a in data.get("agents") or []]
    messages = _messages_adapter.validate_python(raw_messages)
    return agents, messages


def main():
    parser = argparse.ArgumentParser(description="Preview the prompt of a discussion agent")
    parser.add_argument("file", help="Discussion JSON file with 'agents' and 'messages'")
    parser.add_argument("--agent", help="Responding agent id (default: first agent)")
    parser.add_argument("--context-messages", type=int, help="Minimum history messages")
    parser.add_argument("--actions", action="store_true", help="Allow the agent to use actions")
    parser.add_argument("--run", action="store_true", help="Send the prompt to the LLM")

    args = parser.parse_args()

    console.print("\n[bold]Agent Discussion - Prompt Preview[/bold]\n")

    path = Path(args.file)
    if not path.exists():
        console.print(f"[red]File not found: {path}[/]")
        sys.exit(1)

    try:
        agents, messages = load_discussion(path)
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Invalid discussion file: {e}[/]")
        sys.exit(1)

    if not agents:
        console.print("[red]The discussion file defines no agents.[/]")
        sys.exit(1)

    agent = agents[0] if not args.agent else next((a for a in agents if a.id == args.agent), None)
    if agent is None:
        console.print(f"[red]Unknown agent: {args.agent}[/]")
        sys.exit(1)

    settings = get_settings()
    registry = default_registry()
    builder = PromptBuilder(
        max_chars=settings.max_context_chars,
        default_context_messages=settings.default_context_messages,
    )

    conversation = None
    if args.context_messages is not None:
        conversation = ConversationSettings(context_messages=args.context_messages)

    config = AgentConfig.from_agent(agent, can_use_actions=args.actions, conversation=conversation)
    plan = builder.build(
        current_agent=agent,
        current_agent_config=config,
        agents=agents,
        messages=messages,
        capabilities=registry.get_capabilities(),
    )

    show_plan(agent, plan, settings.max_context_chars)

    if args.run:
        llm = ClaudeClient()
        console.print(f"\n[bold]Generating Response...[/]")
        reply = llm.chat(plan.messages)
        console.print(Panel(Markdown(reply), title=f"{agent.name} replies", border_style="green"))

    console.print()


def show_plan(agent: AgentDef, plan: PromptPlan, max_chars: int):
    """Print the context window and the prompt messages"""
    window = plan.window

    table = Table(title=f"Context window for {agent.name}", show_header=False)
    table.add_row("History messages", str(window.total))
    table.add_row(f"Within {max_chars} chars", str(window.within_budget))
    table.add_row("Minimum messages", str(window.min_context_messages))
    table.add_row("Included", f"[cyan]{window.included}[/]")
    table.add_row("Included chars", str(window.included_chars))
    console.print(table)

    if window.included_chars > max_chars:
        console.print(f"[yellow]Included history exceeds the {max_chars} char budget.[/]")

    for i, message in enumerate(plan.messages):
        color = "magenta" if message.role == "system" else "blue"
        console.print(Panel(message.content, title=f"#{i} {message.role}", border_style=color))


if __name__ == "__main__":
    main()
