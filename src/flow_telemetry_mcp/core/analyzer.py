from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import (
    UNKNOWN,
    AnalysisResult,
    DroppedFlow,
    FindingKind,
    FlowProtocol,
    FlowRecord,
    SecurityFinding,
    Severity,
    Verdict,
)

POLICY_DENIED_MARKER = "policy denied"


class FlowAnalyzer:
    """
    Protocol neutral flow analyzer.

    It works on FlowRecord objects only, never on collector output.
    Both stages are pure: the same input always gives the same result.

    Main concepts:
      denial_threshold
        Absolute number of policy denied flows above which a finding is
        raised. A count, not a rate, so small batches still trigger.

      udp_percent_threshold
        UDP share of all flows above which the distribution is flagged.

      fanout_threshold
        Distinct destination namespaces a single source namespace may
        reach before it is flagged.
    """

    def __init__(
        self,
        denial_threshold: int = 10,
        udp_percent_threshold: float = 70.0,
        fanout_threshold: int = 5,
    ):
        self.denial_threshold = int(denial_threshold)
        self.udp_percent_threshold = float(udp_percent_threshold)
        self.fanout_threshold = int(fanout_threshold)

    def set_thresholds(
        self,
        denial_threshold: Optional[int] = None,
        udp_percent_threshold: Optional[float] = None,
        fanout_threshold: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Update detector thresholds at runtime.
        Exposed as an MCP tool by the core server.
        """
        if denial_threshold is not None:
            self.denial_threshold = int(denial_threshold)
        if udp_percent_threshold is not None:
            self.udp_percent_threshold = float(udp_percent_threshold)
        if fanout_threshold is not None:
            self.fanout_threshold = int(fanout_threshold)

        return {
            "denial_threshold": self.denial_threshold,
            "udp_percent_threshold": self.udp_percent_threshold,
            "fanout_threshold": self.fanout_threshold,
        }

    def analyze(self, flows: Iterable[FlowRecord]) -> AnalysisResult:
        """
        Aggregate a batch of flows in a single pass.

        Unknown protocols, verdicts and namespaces get their own bucket
        instead of being dropped, so per category counts always add up to
        the number of flows. Duplicate records are counted independently.
        """
        total = 0
        by_protocol: Dict[FlowProtocol, int] = {}
        by_verdict: Dict[Verdict, int] = {}
        by_src_ns: Dict[str, int] = {}
        by_dst_ns: Dict[str, int] = {}
        talkers: Dict[str, int] = {}
        dropped: List[DroppedFlow] = []
        denied: List[DroppedFlow] = []
        # dict used as an ordered set
        fanout: Dict[str, Dict[str, None]] = {}

        for f in flows:
            total += 1
            by_protocol[f.protocol] = by_protocol.get(f.protocol, 0) + 1
            by_verdict[f.verdict] = by_verdict.get(f.verdict, 0) + 1

            src_ns = f.source.namespace or UNKNOWN
            dst_ns = f.destination.namespace or UNKNOWN
            by_src_ns[src_ns] = by_src_ns.get(src_ns, 0) + 1
            by_dst_ns[dst_ns] = by_dst_ns.get(dst_ns, 0) + 1

            key = f.talker_key()
            talkers[key] = talkers.get(key, 0) + 1

            if src_ns != UNKNOWN and dst_ns != UNKNOWN and src_ns != dst_ns:
                fanout.setdefault(src_ns, {})[dst_ns] = None

            if f.verdict in (Verdict.DROPPED, Verdict.ERROR):
                entry = DroppedFlow(flow=f, description=f.describe())
                dropped.append(entry)
                if POLICY_DENIED_MARKER in f.summary.lower():
                    denied.append(entry)

        percent: Dict[FlowProtocol, float] = {}
        if total > 0:
            for proto, count in by_protocol.items():
                percent[proto] = count * 100.0 / total

        return AnalysisResult(
            total_flows=total,
            counts_by_protocol=by_protocol,
            counts_by_verdict=by_verdict,
            counts_by_source_namespace=by_src_ns,
            counts_by_destination_namespace=by_dst_ns,
            top_talkers=talkers,
            dropped_or_error_flows=tuple(dropped),
            denied_by_policy_flows=tuple(denied),
            protocol_distribution_percent=percent,
            destination_namespaces_by_source={
                ns: tuple(dsts) for ns, dsts in fanout.items()
            },
        )

    def detect(self, result: AnalysisResult) -> List[SecurityFinding]:
        """
        Run the fixed detector battery over an AnalysisResult.

        Order is fixed: policy denials, protocol distribution, then one
        fan-out finding per source namespace in aggregation order.
        """
        findings: List[SecurityFinding] = []

        denied = len(result.denied_by_policy_flows)
        if denied > self.denial_threshold:
            findings.append(
                SecurityFinding(
                    kind=FindingKind.HIGH_POLICY_DENIAL_RATE,
                    severity=Severity.MEDIUM,
                    description=f"High number of policy denied flows: {denied}",
                    recommendation=(
                        "Review network policy configuration for overly "
                        "restrictive rules or misconfigured workloads"
                    ),
                )
            )

        udp_pct = result.protocol_distribution_percent.get(FlowProtocol.UDP, 0.0)
        if udp_pct > self.udp_percent_threshold:
            findings.append(
                SecurityFinding(
                    kind=FindingKind.UNUSUAL_PROTOCOL_DISTRIBUTION,
                    severity=Severity.LOW,
                    description=f"High UDP traffic percentage: {udp_pct:.1f}%",
                    recommendation=(
                        "Verify UDP traffic is expected (DNS, logging, etc.)"
                    ),
                )
            )

        for ns, count in self._fanout_offenders(result):
            findings.append(
                SecurityFinding(
                    kind=FindingKind.EXCESSIVE_CROSS_NAMESPACE_FANOUT,
                    severity=Severity.MEDIUM,
                    description=(
                        f"Namespace {ns} communicates with {count} "
                        f"other namespaces"
                    ),
                    recommendation=(
                        f"Review whether namespace {ns} needs access to all "
                        f"of them and tighten network policies"
                    ),
                )
            )

        return findings

    def _fanout_offenders(self, result: AnalysisResult) -> List[Tuple[str, int]]:
        out: List[Tuple[str, int]] = []
        for ns in result.counts_by_source_namespace:
            count = len(result.destination_namespaces_by_source.get(ns, ()))
            if count > self.fanout_threshold:
                out.append((ns, count))
        return out
