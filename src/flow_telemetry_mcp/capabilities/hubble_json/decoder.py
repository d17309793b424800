from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from flow_telemetry_mcp.core.models import (
    UNKNOWN,
    Endpoint,
    FlowProtocol,
    FlowRecord,
    Verdict,
)

# Hubble prints nanoseconds, datetime only takes microseconds.
_FRACTION = re.compile(r"\.(\d+)")


def _representable(ts: float) -> Optional[float]:
    # FlowRecord.describe() formats ts, so it must round trip through datetime
    if not math.isfinite(ts):
        return None
    try:
        datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return ts


def parse_time(value: Any) -> Optional[float]:
    """
    Convert a Hubble RFC 3339 timestamp to unix seconds.

    Numeric values are taken as unix seconds already. Returns None for
    anything that is not a representable instant, including NaN and
    values outside the platform's time_t range.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return _representable(float(value))
        except OverflowError:
            return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return _representable(dt.timestamp())


def _protocol(flow: Dict[str, Any]) -> FlowProtocol:
    l7 = flow.get("l7") or {}
    if isinstance(l7, dict):
        if "dns" in l7:
            return FlowProtocol.DNS
        if "http" in l7:
            return FlowProtocol.HTTP

    l4 = flow.get("l4") or {}
    if isinstance(l4, dict):
        for key in l4:
            proto = FlowProtocol.parse(key)
            if proto is not FlowProtocol.UNKNOWN:
                return proto

    # Flattened exports carry a plain protocol string.
    return FlowProtocol.parse(flow.get("protocol"))


def _endpoint(flow: Dict[str, Any], side: str) -> Endpoint:
    ep = flow.get(side) or {}
    if not isinstance(ep, dict):
        ep = {}

    ip = flow.get("IP") or {}
    address = ip.get(side) if isinstance(ip, dict) else None

    namespace = ep.get("namespace") or UNKNOWN
    name = ep.get("pod_name") or address or UNKNOWN
    return Endpoint(namespace=str(namespace), name=str(name))


def _summary(flow: Dict[str, Any]) -> str:
    text = str(flow.get("Summary") or flow.get("summary") or "")
    reason = flow.get("drop_reason_desc")
    if reason:
        # POLICY_DENIED -> "policy denied"
        human = str(reason).replace("_", " ").lower()
        if human not in text.lower():
            text = f"{text} ({human})" if text else human
    return text


def decode_flow(obj: Any) -> Optional[FlowRecord]:
    """
    Decode one parsed Hubble JSON object into a FlowRecord.

    Accepts both the `hubble observe -o json` envelope ({"flow": {...}})
    and a bare flow object. Returns None for objects that are not flows,
    such as lost_events or node_status messages.
    """
    if not isinstance(obj, dict):
        return None

    flow = obj.get("flow", obj)
    if not isinstance(flow, dict) or "verdict" not in flow:
        return None

    ts = parse_time(flow.get("time", obj.get("time")))
    if ts is None:
        return None

    return FlowRecord(
        ts=ts,
        protocol=_protocol(flow),
        verdict=Verdict.parse(flow.get("verdict")),
        source=_endpoint(flow, "source"),
        destination=_endpoint(flow, "destination"),
        summary=_summary(flow),
    )


def matches_namespace(flow: FlowRecord, namespace: Optional[str]) -> bool:
    if not namespace:
        return True
    return namespace in (flow.source.namespace, flow.destination.namespace)


@dataclass
class DecodeStats:
    """
    Counters for one decode run.

    lines
      Non blank lines seen.

    parsed
      Lines that were valid JSON, flow or not.

    flows
      Lines that decoded into a FlowRecord.
    """

    lines: int = 0
    parsed: int = 0
    flows: int = 0

    @property
    def skipped(self) -> int:
        return self.lines - self.flows

    def nothing_parseable(self) -> bool:
        return self.lines > 0 and self.parsed == 0


class HubbleJsonDecoder:
    """
    Incremental line decoder shared by every capability.

    Malformed lines are skipped and counted, never raised. Callers decide
    what "nothing parseable" means for their source.
    """

    def __init__(self, namespace: Optional[str] = None):
        self.namespace = namespace
        self.stats = DecodeStats()

    def feed(self, line: str) -> Optional[FlowRecord]:
        line = line.strip()
        if not line:
            return None

        self.stats.lines += 1
        try:
            obj = json.loads(line)
        except ValueError:
            return None
        self.stats.parsed += 1

        flow = decode_flow(obj)
        if flow is None or not matches_namespace(flow, self.namespace):
            return None

        self.stats.flows += 1
        return flow

    def feed_many(self, lines: Iterable[str]) -> List[FlowRecord]:
        out: List[FlowRecord] = []
        for line in lines:
            f = self.feed(line)
            if f is not None:
                out.append(f)
        return out


def decode_hubble_lines(lines: Iterable[str], namespace: Optional[str] = None) -> List[FlowRecord]:
    return HubbleJsonDecoder(namespace=namespace).feed_many(lines)
