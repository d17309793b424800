from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from flow_telemetry_mcp.core.capability_base import Capability
from flow_telemetry_mcp.core.errors import CollectionCancelled, CollectionFailed
from flow_telemetry_mcp.core.models import FlowRecord
from flow_telemetry_mcp.capabilities.hubble_json.decoder import HubbleJsonDecoder

log = logging.getLogger("flow_telemetry_mcp.capabilities.json_file")


class JsonFileCapability:
    """
    Replay capability for saved Hubble output.

    Reads a file produced by `hubble observe -o json > flows.jsonl`, one
    JSON object per line. Useful for offline analysis and deterministic
    runs. The file is already bounded, so duration_seconds is ignored.
    """

    name = "json_file"

    def __init__(self, path: Optional[str] = None):
        self.path: Optional[Path] = Path(path) if path else None
        self._collected = 0
        self._skipped = 0

    def configure(self, path: str) -> Dict[str, Any]:
        self.path = Path(path)
        return {"ok": True, "path": str(self.path)}

    def collect(self, namespace: Optional[str], duration_seconds: int) -> List[FlowRecord]:
        if self.path is None:
            raise CollectionFailed("json_file capability has no source file configured")
        if not self.path.is_file():
            raise CollectionFailed(f"flow file not found: {self.path}")

        decoder = HubbleJsonDecoder(namespace=namespace)
        flows: List[FlowRecord] = []
        try:
            with self.path.open("r", encoding="utf-8", errors="replace") as handle:
                for line in handle:
                    f = decoder.feed(line)
                    if f is not None:
                        flows.append(f)
        except KeyboardInterrupt:
            raise CollectionCancelled(flows)
        except OSError as e:
            raise CollectionFailed(f"could not read {self.path}: {e}") from e

        self._collected += len(flows)
        self._skipped += decoder.stats.lines - decoder.stats.flows

        if decoder.stats.nothing_parseable():
            raise CollectionFailed(f"{self.path} contains no parseable JSON lines")

        log.info("replayed %d flows from %s", len(flows), self.path)
        return flows

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": str(self.path) if self.path else None,
            "collected": self._collected,
            "skipped": self._skipped,
        }


def build_capability() -> Capability:
    return JsonFileCapability()
