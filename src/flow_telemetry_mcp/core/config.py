from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .registry import BUILTIN_CAPABILITIES


@dataclass
class Settings:
    """
    Process wide settings, read once from the environment.

    FLOW_CAPABILITIES
      JSON list of capability import paths. Defaults to the built in ones.

    FLOW_THRESHOLDS
      JSON object passed to FlowAnalyzer.set_thresholds, for example
      '{"denial_threshold": 20, "fanout_threshold": 8}'

    HUBBLE_BIN
      Hubble CLI binary used by the hubble_cli capability.

    FLOW_UDP_HOST, FLOW_UDP_PORT
      Bind address for the json_udp capability.

    FLOW_LOG_LEVEL
      Default log level when the CLI does not override it.
    """

    capabilities: List[str] = field(default_factory=lambda: list(BUILTIN_CAPABILITIES))
    thresholds: Dict[str, Any] = field(default_factory=dict)
    hubble_bin: str = "hubble"
    udp_host: str = "0.0.0.0"
    udp_port: int = 6343
    log_level: str = "INFO"


def _json_env(env: Mapping[str, str], name: str, expected: type) -> Optional[Any]:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{name} is not valid JSON: {e}") from e
    if not isinstance(value, expected):
        raise ValueError(f"{name} must be a JSON {expected.__name__}")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    settings = Settings()

    caps = _json_env(env, "FLOW_CAPABILITIES", list)
    if caps is not None:
        settings.capabilities = [str(c) for c in caps]

    thresholds = _json_env(env, "FLOW_THRESHOLDS", dict)
    if thresholds is not None:
        settings.thresholds = thresholds

    settings.hubble_bin = env.get("HUBBLE_BIN", settings.hubble_bin)
    settings.udp_host = env.get("FLOW_UDP_HOST", settings.udp_host)
    port = env.get("FLOW_UDP_PORT")
    if port:
        try:
            settings.udp_port = int(port)
        except ValueError as e:
            raise ValueError(f"FLOW_UDP_PORT must be an integer, got {port!r}") from e
    settings.log_level = env.get("FLOW_LOG_LEVEL", settings.log_level)
    return settings
