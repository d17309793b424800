import json

from flow_telemetry_mcp.capabilities.json_udp.capability import JsonUdpCapability


def test_json_udp_decode_single_flow(hubble_line):
    cap = JsonUdpCapability()
    flows = cap._decode(hubble_line().encode())
    assert len(flows) == 1
    assert flows[0].destination.name == "api"


def test_json_udp_decode_list_and_lines(hubble_line):
    cap = JsonUdpCapability()
    as_list = json.dumps([json.loads(hubble_line()), json.loads(hubble_line(dst_pod="db"))])
    assert len(cap._decode(as_list.encode())) == 2

    as_lines = hubble_line() + "\n" + hubble_line(dst_pod="db") + "\n"
    assert len(cap._decode(as_lines.encode())) == 2


def test_json_udp_decode_garbage():
    assert JsonUdpCapability()._decode(b"\x00\x01not json") == []
