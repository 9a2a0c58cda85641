"""
Claude Client

Handles communication with the Anthropic Claude API.
"""

from typing import Dict, List, Optional, Sequence, Tuple
import anthropic
import logging

from config.settings import get_settings
from ..discussion.schema import PromptMessage

logger = logging.getLogger(__name__)

CONTINUE_PROMPT = "Please start the discussion."


class LLMError(RuntimeError):
    """Raised when the model call fails"""


class ClaudeClient:
    """
    Client for Claude API.

    Usage:
        client = ClaudeClient()
        reply = client.chat(prompt_messages)
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, max_tokens: Optional[int] = None):
        """
        Initialize Claude client.

        Args:
            api_key: Anthropic API key (defaults to settings)
            model: Model to use (defaults to settings)
            max_tokens: Maximum response tokens (defaults to settings)
        """
        settings = get_settings()
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model or settings.anthropic_model
        self.max_tokens = max_tokens or settings.max_response_tokens
        self.client = None

        if self.api_key:
            self.client = anthropic.Anthropic(api_key=self.api_key)

    @property
    def is_mock(self) -> bool:
        return self.client is None

    def chat(
        self,
        messages: Sequence[PromptMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate the next discussion reply.

        Args:
            messages: Prompt built for the responding agent
            temperature: Response temperature
            max_tokens: Maximum response tokens

        Returns:
            Generated response text

        Raises:
            LLMError: if the API call fails
        """
        system, turns = self.to_anthropic_messages(messages)

        if not self.client:
            return self._mock_response(system, turns)

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                temperature=temperature,
                system=system,
                messages=turns,
            )
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            raise LLMError(f"Claude API error: {e}") from e

        text = "".join(block.text for block in response.content if getattr(block, "type", None) == "text")
        return text or "No response generated."

    @staticmethod
    def to_anthropic_messages(messages: Sequence[PromptMessage]) -> Tuple[str, List[Dict[str, str]]]:
        """
        Split a prompt into the system parameter and the message turns.

        The leading system entry becomes the system parameter. Later system
        entries (action results) are sent as user turns marked `[System]`.
        """
        system = ""
        turns: List[Dict[str, str]] = []

        for i, message in enumerate(messages):
            if message.role == "system" and i == 0:
                system = message.content
            elif message.role == "system":
                turns.append({"role": "user", "content": f"[System]\n{message.content}"})
            else:
                turns.append({"role": "user", "content": message.content})

        if not turns:
            turns.append({"role": "user", "content": CONTINUE_PROMPT})

        return system, turns

    def _mock_response(self, system: str, turns: List[Dict[str, str]]) -> str:
        """Generate a mock response when API key is not available"""
        last = turns[-1]["content"] if turns else ""
        return f"""[MOCK RESPONSE - No API key configured]

Replying to: {last[:200]}

Prompt: {len(system)} system chars, {len(turns)} turn(s).
Set ANTHROPIC_API_KEY in your .env file to enable Claude responses."""
