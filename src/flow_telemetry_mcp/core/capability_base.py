from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from .models import FlowRecord


class Capability(Protocol):
    """
    Required interface for a collector capability.

    A capability is responsible for
    1. Reaching one external flow source (CLI, file, socket)
    2. Decoding its output into FlowRecord
    3. Returning a bounded, ordered list of flows for one window

    The core never imports specific capabilities directly.
    It loads them via registry using import paths.
    """

    name: str

    def status(self) -> Dict[str, Any]:
        """
        Return quick health and counters. Must be fast and side effect free.
        """
        ...

    def collect(self, namespace: Optional[str], duration_seconds: int) -> List[FlowRecord]:
        """
        Collect flows for at most duration_seconds.

        Raises CollectionFailed when the source is unreachable or nothing
        it produced could be parsed. Returns an empty list when the source
        worked but saw no flows. Raises CollectionCancelled, carrying the
        partial flows, when interrupted.
        """
        ...
