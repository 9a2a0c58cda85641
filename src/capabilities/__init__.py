"""
Capabilities module - Actions agents may call during a discussion
"""

from .builtin import default_registry
from .registry import Capability, CapabilityNotFoundError, CapabilityRegistry

__all__ = ["Capability", "CapabilityNotFoundError", "CapabilityRegistry", "default_registry"]
