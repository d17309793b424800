"""
flow_telemetry_mcp

Network flow telemetry analyzer with pluggable collector capabilities.

Core ideas
1. Capabilities collect one bounded window of flows from an external source
2. A shared decoder normalizes Hubble JSON into FlowRecord
3. Core analyzer aggregates FlowRecord, runs detectors and renders a report
   without knowing where the flows came from
"""

__version__ = "0.1.0"

__all__ = ["core", "capabilities", "cli"]
