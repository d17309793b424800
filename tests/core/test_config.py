import pytest

from flow_telemetry_mcp.core.config import load_settings
from flow_telemetry_mcp.core.registry import BUILTIN_CAPABILITIES


def test_defaults():
    s = load_settings({})
    assert s.capabilities == BUILTIN_CAPABILITIES
    assert s.thresholds == {}
    assert s.hubble_bin == "hubble"
    assert s.udp_port == 6343
    assert s.log_level == "INFO"


def test_env_overrides():
    s = load_settings(
        {
            "FLOW_CAPABILITIES": '["a.b:c"]',
            "FLOW_THRESHOLDS": '{"fanout_threshold": 8}',
            "HUBBLE_BIN": "/opt/hubble",
            "FLOW_UDP_PORT": "9999",
            "FLOW_LOG_LEVEL": "DEBUG",
        }
    )
    assert s.capabilities == ["a.b:c"]
    assert s.thresholds == {"fanout_threshold": 8}
    assert s.hubble_bin == "/opt/hubble"
    assert s.udp_port == 9999
    assert s.log_level == "DEBUG"


def test_invalid_json_names_the_variable():
    with pytest.raises(ValueError, match="FLOW_THRESHOLDS"):
        load_settings({"FLOW_THRESHOLDS": "{not json"})


def test_wrong_json_type():
    with pytest.raises(ValueError, match="FLOW_CAPABILITIES"):
        load_settings({"FLOW_CAPABILITIES": '{"a": 1}'})
