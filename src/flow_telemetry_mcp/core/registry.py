from __future__ import annotations
import importlib
from dataclasses import dataclass
from typing import Dict, List
from .capability_base import Capability

BUILTIN_CAPABILITIES = [
    "flow_telemetry_mcp.capabilities.hubble_cli.capability:build_capability",
    "flow_telemetry_mcp.capabilities.json_file.capability:build_capability",
    "flow_telemetry_mcp.capabilities.json_udp.capability:build_capability",
]


@dataclass
class LoadedCapability:
    """
    Wrapper for a loaded capability instance.
    """
    name: str
    import_path: str
    instance: Capability


class CapabilityRegistry:
    """
    Holds loaded collector capabilities.

    Import string format:
      "some.module.path:factory_function"

    Example:
      "flow_telemetry_mcp.capabilities.hubble_cli.capability:build_capability"
    """

    def __init__(self):
        self._caps: Dict[str, LoadedCapability] = {}

    def register(self, cap: Capability, import_path: str = "") -> None:
        if cap.name in self._caps:
            raise ValueError(f"duplicate capability name {cap.name}")
        self._caps[cap.name] = LoadedCapability(name=cap.name, import_path=import_path, instance=cap)

    def get(self, name: str) -> Capability:
        if name not in self._caps:
            raise KeyError(f"capability not loaded {name}, available: {', '.join(self.list())}")
        return self._caps[name].instance

    def list(self) -> List[str]:
        return sorted(self._caps.keys())

    def load_from_import_paths(self, import_paths: List[str]) -> None:
        for path in import_paths:
            module_path, sep, factory_name = path.partition(":")
            if not sep or not factory_name:
                raise ValueError(f"capability import path must be module:factory, got {path!r}")
            module = importlib.import_module(module_path)
            factory = getattr(module, factory_name)
            self.register(factory(), import_path=path)
