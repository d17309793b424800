import math

from flow_telemetry_mcp.core.analyzer import FlowAnalyzer
from flow_telemetry_mcp.core.models import FindingKind, FlowProtocol, Severity, Verdict


def _kinds(findings, kind):
    return [f for f in findings if f.kind == kind]


def test_counts_sum_to_total(analyzer, make_flow):
    flows = [
        make_flow(proto=FlowProtocol.TCP),
        make_flow(proto=FlowProtocol.UDP, verdict=Verdict.DROPPED),
        make_flow(proto=FlowProtocol.UNKNOWN, verdict=Verdict.UNKNOWN),
        make_flow(proto=FlowProtocol.DNS, verdict=Verdict.ERROR),
        make_flow(proto=FlowProtocol.TCP),
    ]
    result = analyzer.analyze(flows)

    assert result.total_flows == 5
    assert sum(result.counts_by_protocol.values()) == 5
    assert sum(result.counts_by_verdict.values()) == 5
    assert result.counts_by_protocol[FlowProtocol.UNKNOWN] == 1
    assert math.isclose(sum(result.protocol_distribution_percent.values()), 100.0)


def test_empty_input_is_valid(analyzer):
    result = analyzer.analyze([])

    assert result.total_flows == 0
    assert result.counts_by_protocol == {}
    assert result.counts_by_verdict == {}
    assert result.protocol_distribution_percent == {}
    assert result.dropped_or_error_flows == ()
    assert analyzer.detect(result) == []


def test_unknown_namespace_bucket_and_talker_key(analyzer, make_flow):
    result = analyzer.analyze([make_flow(src="unknown/10.0.0.9", dst="default/api")])

    assert result.counts_by_source_namespace == {"unknown": 1}
    assert result.counts_by_destination_namespace == {"default": 1}
    assert result.top_talkers == {"unknown/10.0.0.9 -> default/api": 1}


def test_duplicates_are_counted_independently(analyzer, make_flow):
    f = make_flow()
    result = analyzer.analyze([f, f, f])
    assert result.top_talkers["default/web -> default/api"] == 3


def test_dropped_and_policy_denied_lists(analyzer, make_flow):
    flows = [
        make_flow(verdict=Verdict.FORWARDED, summary="policy denied but forwarded?"),
        make_flow(verdict=Verdict.DROPPED, summary="Policy Denied by rule X"),
        make_flow(verdict=Verdict.ERROR, summary="connection reset"),
    ]
    result = analyzer.analyze(flows)

    assert [d.flow for d in result.dropped_or_error_flows] == flows[1:]
    assert [d.flow for d in result.denied_by_policy_flows] == [flows[1]]
    assert "Policy Denied by rule X" in result.dropped_or_error_flows[0].description


def test_input_records_are_not_mutated(analyzer, make_flow):
    flows = [make_flow(verdict=Verdict.DROPPED, summary="policy denied")]
    before = list(flows)
    analyzer.analyze(flows)
    assert flows == before


def test_analyze_is_deterministic(analyzer, make_flow):
    flows = [
        make_flow(src=f"ns{i % 3}/pod{i}", dst=f"ns{i % 4}/svc", proto=FlowProtocol.UDP if i % 2 else FlowProtocol.TCP)
        for i in range(30)
    ]
    assert analyzer.analyze(flows) == analyzer.analyze(flows)


def test_policy_denial_threshold_is_strict(analyzer, make_flow):
    eleven = [make_flow(verdict=Verdict.DROPPED, summary="Policy Denied") for _ in range(11)]
    ten = eleven[:10]

    findings = analyzer.detect(analyzer.analyze(eleven))
    denial = _kinds(findings, FindingKind.HIGH_POLICY_DENIAL_RATE)
    assert len(denial) == 1
    assert denial[0].severity == Severity.MEDIUM
    assert "11" in denial[0].description

    assert _kinds(analyzer.detect(analyzer.analyze(ten)), FindingKind.HIGH_POLICY_DENIAL_RATE) == []


def test_udp_distribution_threshold_is_strict(analyzer, make_flow):
    over = [make_flow(proto=FlowProtocol.UDP)] * 71 + [make_flow(proto=FlowProtocol.TCP)] * 29
    at = [make_flow(proto=FlowProtocol.UDP)] * 70 + [make_flow(proto=FlowProtocol.TCP)] * 30

    findings = analyzer.detect(analyzer.analyze(over))
    udp = _kinds(findings, FindingKind.UNUSUAL_PROTOCOL_DISTRIBUTION)
    assert len(udp) == 1
    assert udp[0].severity == Severity.LOW
    assert "71.0%" in udp[0].description

    assert _kinds(analyzer.detect(analyzer.analyze(at)), FindingKind.UNUSUAL_PROTOCOL_DISTRIBUTION) == []


def test_cross_namespace_fanout(analyzer, make_flow):
    flows = [make_flow(src="team-a/client", dst=f"{ns}/svc") for ns in "bcdefg"]
    flows.append(make_flow(src="team-a/client", dst="unknown/1.1.1.1"))
    flows.append(make_flow(src="team-a/client", dst="team-a/svc"))

    fanout = _kinds(analyzer.detect(analyzer.analyze(flows)), FindingKind.EXCESSIVE_CROSS_NAMESPACE_FANOUT)
    assert len(fanout) == 1
    assert "team-a" in fanout[0].description
    assert "6" in fanout[0].description
    assert fanout[0].severity == Severity.MEDIUM


def test_fanout_of_five_is_not_flagged(analyzer, make_flow):
    flows = [make_flow(src="team-a/client", dst=f"{ns}/svc") for ns in "bcdef"]
    flows += flows
    findings = analyzer.detect(analyzer.analyze(flows))
    assert _kinds(findings, FindingKind.EXCESSIVE_CROSS_NAMESPACE_FANOUT) == []


def test_unknown_source_namespace_never_fans_out(analyzer, make_flow):
    flows = [make_flow(src="unknown/x", dst=f"{ns}/svc") for ns in "bcdefgh"]
    result = analyzer.analyze(flows)
    assert "unknown" not in result.destination_namespaces_by_source
    assert analyzer.detect(result) == []


def test_findings_follow_fixed_order(make_flow):
    analyzer = FlowAnalyzer(denial_threshold=0, udp_percent_threshold=10.0, fanout_threshold=1)
    flows = [
        make_flow(src="zeta/a", dst="b/x", proto=FlowProtocol.UDP, verdict=Verdict.DROPPED, summary="policy denied"),
        make_flow(src="zeta/a", dst="c/x", proto=FlowProtocol.UDP),
        make_flow(src="alpha/a", dst="b/x", proto=FlowProtocol.UDP),
        make_flow(src="alpha/a", dst="c/x", proto=FlowProtocol.UDP),
    ]
    findings = analyzer.detect(analyzer.analyze(flows))

    assert [f.kind for f in findings] == [
        FindingKind.HIGH_POLICY_DENIAL_RATE,
        FindingKind.UNUSUAL_PROTOCOL_DISTRIBUTION,
        FindingKind.EXCESSIVE_CROSS_NAMESPACE_FANOUT,
        FindingKind.EXCESSIVE_CROSS_NAMESPACE_FANOUT,
    ]
    # insertion order of source namespaces, not alphabetical
    assert "zeta" in findings[2].description
    assert "alpha" in findings[3].description


def test_set_thresholds_updates_only_given_values(analyzer):
    out = analyzer.set_thresholds(fanout_threshold=8)
    assert out == {"denial_threshold": 10, "udp_percent_threshold": 70.0, "fanout_threshold": 8}
