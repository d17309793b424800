from __future__ import annotations
from flow_telemetry_mcp.core.config import load_settings
from flow_telemetry_mcp.logging_config import setup_logging


def main() -> None:
    """
    Load capabilities from FLOW_CAPABILITIES env var and serve over MCP.

    Example:
      export FLOW_CAPABILITIES='[
        "flow_telemetry_mcp.capabilities.hubble_cli.capability:build_capability",
        "flow_telemetry_mcp.capabilities.json_file.capability:build_capability"
      ]'
      export FLOW_THRESHOLDS='{"fanout_threshold": 8}'
      python -m flow_telemetry_mcp.cli.run_server
    """
    settings = load_settings()
    setup_logging(settings.log_level)

    # mcp is only needed here, keep it off the CLI import path
    from flow_telemetry_mcp.core.server import FlowMCPServer

    server = FlowMCPServer(capability_imports=settings.capabilities, thresholds=settings.thresholds)
    server.run()


if __name__ == "__main__":
    main()
