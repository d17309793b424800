from __future__ import annotations
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .models import AnalysisResult, SecurityFinding

TITLE = "NETWORK FLOW ANALYSIS REPORT"
RULE = "=" * 80
SUBRULE = "-" * 40
NO_FLOWS_MESSAGE = "No flows observed in the collection window"


def _section(lines: List[str], title: str) -> None:
    lines.append("")
    lines.append(title)
    lines.append(SUBRULE)


def render(
    result: AnalysisResult,
    findings: Sequence[SecurityFinding],
    generated_at: Optional[datetime] = None,
    scope: Optional[str] = None,
    partial: bool = False,
    top_n: int = 10,
    recent_n: int = 10,
) -> str:
    """
    Render an AnalysisResult and its findings as a plain text report.

    Never raises for a well formed result and never prints. Every map is
    sorted before output, so a fixed generated_at gives identical text
    for identical input.
    """
    when = generated_at or datetime.now(timezone.utc)

    lines: List[str] = [
        RULE,
        TITLE,
        RULE,
        f"Generated: {when.isoformat()}",
        f"Scope: {('namespace ' + scope) if scope else 'all namespaces'}",
        f"Total Flows Analyzed: {result.total_flows}",
    ]
    if partial:
        lines.append("NOTE: collection was cancelled, this report covers a partial window")

    if result.total_flows == 0:
        lines.append("")
        lines.append(NO_FLOWS_MESSAGE)

    _section(lines, "Protocol Distribution")
    if result.protocol_distribution_percent:
        ranked = sorted(
            result.protocol_distribution_percent.items(),
            key=lambda kv: (-kv[1], kv[0].value),
        )
        for proto, pct in ranked:
            count = result.counts_by_protocol.get(proto, 0)
            lines.append(f"  {proto.value}: {pct:.1f}% ({count} flows)")
    else:
        lines.append("  (none)")

    _section(lines, "Verdict Summary")
    if result.counts_by_verdict:
        ranked_verdicts = sorted(
            result.counts_by_verdict.items(),
            key=lambda kv: (-kv[1], kv[0].value),
        )
        for verdict, count in ranked_verdicts:
            lines.append(f"  {verdict.value}: {count}")
    else:
        lines.append("  (none)")

    if result.top_talkers:
        _section(lines, f"Top {top_n} Talkers")
        ranked_talkers = sorted(result.top_talkers.items(), key=lambda kv: (-kv[1], kv[0]))
        for key, count in ranked_talkers[:top_n]:
            lines.append(f"  {key}: {count} flows")

    _section(lines, "Security Findings")
    if findings:
        for finding in findings:
            lines.append(f"  [{finding.severity.value}] {finding.kind.value}: {finding.description}")
            lines.append(f"      Recommendation: {finding.recommendation}")
    else:
        lines.append("  No security issues detected.")

    dropped = result.dropped_or_error_flows
    # recent_n of 0 shows none
    recent = dropped[max(len(dropped) - recent_n, 0):]
    if recent:
        _section(lines, "Recent Dropped Flows")
        for entry in recent:
            lines.append(f"  {entry.description}")

    lines.append("")
    lines.append(RULE)
    return "\n".join(lines) + "\n"
