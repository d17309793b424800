from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from .analyzer import FlowAnalyzer
from .errors import CollectionFailed
from .pipeline import run_analysis
from .registry import CapabilityRegistry

log = logging.getLogger("flow_telemetry_mcp.server")


class FlowMCPServer:
    """
    Protocol neutral MCP server.

    Responsibilities:
      Load configured collector capabilities
      Expose collection plus analysis as MCP tools
      Provide one shared analyzer, so thresholds set through a tool apply
      to every later run
    """

    def __init__(self, capability_imports: List[str], thresholds: Optional[Dict[str, Any]] = None):
        self.analyzer = FlowAnalyzer()
        if thresholds:
            self.analyzer.set_thresholds(**thresholds)
        self.registry = CapabilityRegistry()
        self.mcp = FastMCP("flow_telemetry_mcp")

        self.registry.load_from_import_paths(capability_imports)
        log.info("loaded capabilities: %s", ", ".join(self.registry.list()))
        self._register_core_tools()

    def analyze_flows(
        self,
        capability: str,
        namespace: Optional[str] = None,
        duration_seconds: int = 30,
        source_file: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Blocking: collects for up to duration_seconds. The MCP tool runs
        this in a worker thread.
        """
        cap = self.registry.get(capability)
        if source_file:
            configure = getattr(cap, "configure", None)
            if configure is None:
                return {"ok": False, "error": f"capability {capability} does not take a source file"}
            configure(path=source_file)

        try:
            run = run_analysis(cap, self.analyzer, namespace=namespace, duration_seconds=int(duration_seconds))
        except CollectionFailed as e:
            log.error("collection failed on %s: %s", capability, e)
            return {"ok": False, "error": str(e)}
        return run.to_dict()

    def _register_core_tools(self) -> None:
        @self.mcp.tool()
        def list_capabilities() -> List[str]:
            return self.registry.list()

        @self.mcp.tool()
        def capability_status(name: str) -> Dict[str, Any]:
            cap = self.registry.get(name)
            return cap.status()

        @self.mcp.tool()
        def set_thresholds(
            denial_threshold: Optional[int] = None,
            udp_percent_threshold: Optional[float] = None,
            fanout_threshold: Optional[int] = None,
        ) -> Dict[str, Any]:
            return self.analyzer.set_thresholds(
                denial_threshold=denial_threshold,
                udp_percent_threshold=udp_percent_threshold,
                fanout_threshold=fanout_threshold,
            )

        @self.mcp.tool()
        async def analyze_flows(
            capability: str = "hubble_cli",
            namespace: Optional[str] = None,
            duration_seconds: int = 30,
            source_file: Optional[str] = None,
        ) -> Dict[str, Any]:
            # collection blocks for the whole window, keep it off the event loop
            return await asyncio.to_thread(
                self.analyze_flows,
                capability=capability,
                namespace=namespace,
                duration_seconds=duration_seconds,
                source_file=source_file,
            )

    def run(self) -> None:
        self.mcp.run()
