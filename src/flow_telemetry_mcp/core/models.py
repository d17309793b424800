from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Tuple

UNKNOWN = "unknown"


class FlowProtocol(str, Enum):
    """
    Bounded protocol vocabulary.

    Collectors report free-form strings. Anything outside this set is
    bucketed under UNKNOWN so totals still add up.
    """

    TCP = "TCP"
    UDP = "UDP"
    ICMP = "ICMP"
    DNS = "DNS"
    HTTP = "HTTP"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "FlowProtocol":
        if value is None:
            return cls.UNKNOWN
        text = str(value).strip().upper()
        if text.startswith("ICMP"):
            # ICMPv4 and ICMPv6 share one bucket
            return cls.ICMP
        for member in cls:
            if member is not cls.UNKNOWN and member.value == text:
                return member
        return cls.UNKNOWN


class Verdict(str, Enum):
    FORWARDED = "FORWARDED"
    DROPPED = "DROPPED"
    ERROR = "ERROR"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Verdict":
        if value is None:
            return cls.UNKNOWN
        text = str(value).strip().upper()
        for member in cls:
            if member is not cls.UNKNOWN and member.value == text:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class Endpoint:
    """
    Identity of one side of a flow.

    namespace
      Grouping such as a Kubernetes namespace. "unknown" when unresolved.

    name
      Workload or pod name, falling back to an address or "unknown".
    """

    namespace: str = UNKNOWN
    name: str = UNKNOWN

    def label(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class FlowRecord:
    """
    Normalized flow record that all capabilities must output.

    The engine only ever reads these. Collectors are the single producer,
    so anything that reaches the engine is already well formed.

    Fields:
      ts
        Unix time in seconds, as reported by the collector.

      protocol, verdict
        Bounded enumerations with an explicit UNKNOWN member.

      source, destination
        Endpoint identities.

      summary
        Free text from the collector. Used only for substring heuristics.
    """

    ts: float
    protocol: FlowProtocol = FlowProtocol.UNKNOWN
    verdict: Verdict = Verdict.UNKNOWN
    source: Endpoint = field(default_factory=Endpoint)
    destination: Endpoint = field(default_factory=Endpoint)
    summary: str = ""

    def talker_key(self) -> str:
        return f"{self.source.label()} -> {self.destination.label()}"

    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.ts, tz=timezone.utc)

    def describe(self) -> str:
        when = self.timestamp().strftime("%Y-%m-%d %H:%M:%S")
        text = (
            f"{when} {self.talker_key()} "
            f"{self.protocol.value} {self.verdict.value}"
        )
        if self.summary:
            text += f": {self.summary}"
        return text


@dataclass(frozen=True)
class DroppedFlow:
    flow: FlowRecord
    description: str


@dataclass(frozen=True)
class AnalysisResult:
    """
    Aggregate view over one batch of FlowRecords.

    Built once by FlowAnalyzer.analyze and never modified afterwards.
    Mapping values are counts; sequences keep input order.

    destination_namespaces_by_source
      For each source namespace, the distinct destination namespaces it
      reached, in first seen order. Same namespace traffic and "unknown"
      on either side are left out. Fan-out detection reads this instead
      of going back to the raw flows.
    """

    total_flows: int = 0
    counts_by_protocol: Dict[FlowProtocol, int] = field(default_factory=dict)
    counts_by_verdict: Dict[Verdict, int] = field(default_factory=dict)
    counts_by_source_namespace: Dict[str, int] = field(default_factory=dict)
    counts_by_destination_namespace: Dict[str, int] = field(default_factory=dict)
    top_talkers: Dict[str, int] = field(default_factory=dict)
    dropped_or_error_flows: Tuple[DroppedFlow, ...] = ()
    denied_by_policy_flows: Tuple[DroppedFlow, ...] = ()
    protocol_distribution_percent: Dict[FlowProtocol, float] = field(default_factory=dict)
    destination_namespaces_by_source: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """
        Plain JSON friendly view, used by the CLI --json mode and MCP tools.
        """
        return {
            "total_flows": self.total_flows,
            "counts_by_protocol": {p.value: n for p, n in self.counts_by_protocol.items()},
            "counts_by_verdict": {v.value: n for v, n in self.counts_by_verdict.items()},
            "counts_by_source_namespace": dict(self.counts_by_source_namespace),
            "counts_by_destination_namespace": dict(self.counts_by_destination_namespace),
            "top_talkers": dict(self.top_talkers),
            "dropped_or_error_flows": [d.description for d in self.dropped_or_error_flows],
            "denied_by_policy_flows": [d.description for d in self.denied_by_policy_flows],
            "protocol_distribution_percent": {
                p.value: pct for p, pct in self.protocol_distribution_percent.items()
            },
            "destination_namespaces_by_source": {
                ns: list(dsts) for ns, dsts in self.destination_namespaces_by_source.items()
            },
        }


class FindingKind(str, Enum):
    HIGH_POLICY_DENIAL_RATE = "HIGH_POLICY_DENIAL_RATE"
    UNUSUAL_PROTOCOL_DISTRIBUTION = "UNUSUAL_PROTOCOL_DISTRIBUTION"
    EXCESSIVE_CROSS_NAMESPACE_FANOUT = "EXCESSIVE_CROSS_NAMESPACE_FANOUT"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        # Display ordering only.
        return {"LOW": 0, "MEDIUM": 1, "HIGH": 2}[self.value]


@dataclass(frozen=True)
class SecurityFinding:
    kind: FindingKind
    severity: Severity
    description: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
        }
