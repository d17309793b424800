from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .analyzer import FlowAnalyzer
from .capability_base import Capability
from .errors import CollectionCancelled
from .models import AnalysisResult, FlowRecord, SecurityFinding
from .report import render

log = logging.getLogger("flow_telemetry_mcp.pipeline")


@dataclass(frozen=True)
class AnalysisRun:
    """
    Everything one run produced.

    partial
      True when collection was cancelled and the report covers only the
      flows gathered before the stop.
    """

    result: AnalysisResult
    findings: List[SecurityFinding] = field(default_factory=list)
    report: str = ""
    partial: bool = False
    namespace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "partial": self.partial,
            "namespace": self.namespace,
            "result": self.result.to_dict(),
            "findings": [f.to_dict() for f in self.findings],
            "report": self.report,
        }


def analyze_flows(
    flows: List[FlowRecord],
    analyzer: FlowAnalyzer,
    namespace: Optional[str] = None,
    partial: bool = False,
    generated_at: Optional[datetime] = None,
) -> AnalysisRun:
    result = analyzer.analyze(flows)
    findings = analyzer.detect(result)
    report = render(
        result,
        findings,
        generated_at=generated_at or datetime.now(timezone.utc),
        scope=namespace,
        partial=partial,
    )
    return AnalysisRun(
        result=result,
        findings=findings,
        report=report,
        partial=partial,
        namespace=namespace,
    )


def run_analysis(
    collector: Capability,
    analyzer: FlowAnalyzer,
    namespace: Optional[str] = None,
    duration_seconds: int = 30,
    generated_at: Optional[datetime] = None,
) -> AnalysisRun:
    """
    Collect one window from a capability, then analyze and render it.

    CollectionFailed propagates to the caller. CollectionCancelled is
    turned into a partial run over the flows gathered so far.
    """
    partial = False
    try:
        flows = collector.collect(namespace, duration_seconds)
    except CollectionCancelled as e:
        log.warning("collection cancelled, analyzing %d partial flows", len(e.flows))
        flows = e.flows
        partial = True

    log.info("analyzing %d flows from %s", len(flows), collector.name)
    run = analyze_flows(flows, analyzer, namespace=namespace, partial=partial, generated_at=generated_at)
    log.info("%d findings", len(run.findings))
    return run
