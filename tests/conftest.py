import json
import pytest

from flow_telemetry_mcp.core.analyzer import FlowAnalyzer
from flow_telemetry_mcp.core.models import Endpoint, FlowProtocol, FlowRecord, Verdict


@pytest.fixture
def analyzer():
    return FlowAnalyzer()


@pytest.fixture
def make_flow():
    def _make(
        src="default/web",
        dst="default/api",
        proto=FlowProtocol.TCP,
        verdict=Verdict.FORWARDED,
        summary="",
        ts=1_700_000_000.0,
    ) -> FlowRecord:
        src_ns, src_name = src.split("/")
        dst_ns, dst_name = dst.split("/")
        return FlowRecord(
            ts=ts,
            protocol=proto,
            verdict=verdict,
            source=Endpoint(namespace=src_ns, name=src_name),
            destination=Endpoint(namespace=dst_ns, name=dst_name),
            summary=summary,
        )

    return _make


@pytest.fixture
def hubble_line():
    def _line(
        src_ns="default",
        src_pod="web",
        dst_ns="default",
        dst_pod="api",
        verdict="FORWARDED",
        l4="TCP",
        summary="TCP Flags: SYN",
        time_str="2024-05-01T12:00:00.123456789Z",
        **extra,
    ) -> str:
        flow = {
            "time": time_str,
            "verdict": verdict,
            "source": {"namespace": src_ns, "pod_name": src_pod},
            "destination": {"namespace": dst_ns, "pod_name": dst_pod},
            "l4": {l4: {"source_port": 40000, "destination_port": 8080}},
            "Summary": summary,
        }
        flow.update(extra)
        return json.dumps({"flow": flow, "node_name": "kind-worker", "time": time_str})

    return _line
