"""
Context module - Builds the prompt for an agent turn
"""

from .builder import ContextWindow, PromptBuilder, PromptPlan
from .prompts import PromptTemplates

__all__ = ["ContextWindow", "PromptBuilder", "PromptPlan", "PromptTemplates"]
