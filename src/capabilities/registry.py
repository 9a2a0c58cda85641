"""
Capability Registry

A dispatch table of the actions agents may call, keyed by name.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class CapabilityNotFoundError(KeyError):
    """Raised when an action names a capability that is not registered"""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Capability not found: {self.name}"


@dataclass(frozen=True)
class Capability:
    """A named action with its executor"""
    name: str
    description: str
    execute: Callable[[Dict[str, Any]], Any]
    module: Optional[str] = None


class CapabilityRegistry:
    """
    Holds the capabilities available to a discussion.

    One registry is created by the application and passed to whatever needs
    it; there is no process-wide instance.

    Usage:
        registry = CapabilityRegistry()
        registry.register(Capability("echo", "Echo params", lambda p: p))
        registry.execute("echo", {"text": "hi"})
    """

    def __init__(self, capabilities: Optional[Iterable[Capability]] = None):
        self._capabilities: Dict[str, Capability] = {}
        if capabilities:
            self.register_all(capabilities)

    def register(self, capability: Capability) -> Capability:
        if capability.name in self._capabilities:
            logger.warning(f"Replacing capability: {capability.name}")
        self._capabilities[capability.name] = capability
        return capability

    def register_all(self, capabilities: Iterable[Capability]) -> None:
        for capability in capabilities:
            self.register(capability)

    def unregister(self, name: str) -> bool:
        return self._capabilities.pop(name, None) is not None

    def has(self, name: str) -> bool:
        return name in self._capabilities

    def get(self, name: str) -> Capability:
        try:
            return self._capabilities[name]
        except KeyError:
            raise CapabilityNotFoundError(name) from None

    def get_capabilities(self) -> List[Capability]:
        """All capabilities in registration order"""
        return list(self._capabilities.values())

    def execute(self, name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        capability = self.get(name)
        return capability.execute(dict(params or {}))

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities
