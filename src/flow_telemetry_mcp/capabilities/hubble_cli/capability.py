from __future__ import annotations
import logging
import subprocess
import tempfile
import threading
from typing import Any, Dict, List, Optional

from flow_telemetry_mcp.core.capability_base import Capability
from flow_telemetry_mcp.core.config import load_settings
from flow_telemetry_mcp.core.errors import CollectionCancelled, CollectionFailed
from flow_telemetry_mcp.core.models import FlowRecord
from flow_telemetry_mcp.capabilities.hubble_json.decoder import HubbleJsonDecoder

log = logging.getLogger("flow_telemetry_mcp.capabilities.hubble_cli")


class HubbleCliCapability:
    """
    Hubble CLI capability.

    Runs `hubble observe --output json --follow` for the collection window
    and decodes its stdout line by line. A timer terminates the child when
    the window elapses, so collection never blocks past duration_seconds
    plus the time the child needs to exit.

    Outcomes:
      binary missing or not executable -> CollectionFailed
      child exits with an error before the window and produced no flows -> CollectionFailed
      child printed lines but none were JSON -> CollectionFailed
      child ran fine and printed nothing -> []
      KeyboardInterrupt while reading -> CollectionCancelled(partial flows)
    """

    name = "hubble_cli"

    def __init__(self, binary: str = "hubble", terminate_grace_seconds: float = 5.0):
        self.binary = binary
        self.terminate_grace_seconds = float(terminate_grace_seconds)

        self._runs = 0
        self._collected = 0
        self._skipped = 0
        self._last_error: Optional[str] = None

    def build_command(self, namespace: Optional[str]) -> List[str]:
        cmd = [self.binary, "observe", "--output", "json", "--follow"]
        if namespace:
            cmd += ["--namespace", namespace]
        return cmd

    def collect(self, namespace: Optional[str], duration_seconds: int) -> List[FlowRecord]:
        cmd = self.build_command(namespace)
        log.info("running %s for %ss", " ".join(cmd), duration_seconds)
        self._runs += 1

        # a full stderr pipe would stall the child
        errfile = tempfile.TemporaryFile(mode="w+", errors="replace")
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=errfile,
                text=True,
            )
        except OSError as e:
            errfile.close()
            self._last_error = str(e)
            raise CollectionFailed(
                f"could not start {cmd[0]!r}: {e}. Is the Hubble CLI installed and on PATH "
                f"(or set HUBBLE_BIN)?"
            ) from e

        window_elapsed = threading.Event()

        def _expire() -> None:
            window_elapsed.set()
            proc.terminate()

        timer = threading.Timer(float(duration_seconds), _expire)
        timer.daemon = True
        decoder = HubbleJsonDecoder(namespace=namespace)
        flows: List[FlowRecord] = []

        timer.start()
        try:
            assert proc.stdout is not None
            for line in proc.stdout:
                f = decoder.feed(line)
                if f is not None:
                    flows.append(f)
        except KeyboardInterrupt:
            log.warning("collection interrupted after %d flows", len(flows))
            self._record(decoder, flows)
            raise CollectionCancelled(flows)
        finally:
            timer.cancel()
            self._reap(proc)
            errfile.seek(0)
            stderr = errfile.read().strip()
            errfile.close()

        self._record(decoder, flows)

        if proc.returncode not in (0, None) and not window_elapsed.is_set() and not flows:
            self._last_error = stderr or f"exit code {proc.returncode}"
            raise CollectionFailed(
                f"hubble observe failed ({self._last_error}). Check that Hubble Relay is "
                f"reachable, for example with `cilium hubble port-forward`."
            )

        if decoder.stats.nothing_parseable():
            self._last_error = "no parseable output"
            raise CollectionFailed(
                f"hubble observe produced {decoder.stats.lines} lines but none were valid JSON"
            )

        log.info(
            "collected %d flows, %d lines skipped or filtered",
            len(flows),
            decoder.stats.lines - decoder.stats.flows,
        )
        return flows

    def _reap(self, proc: subprocess.Popen) -> None:
        if proc.poll() is None:
            proc.terminate()
        try:
            proc.wait(timeout=self.terminate_grace_seconds)
        except subprocess.TimeoutExpired:
            log.warning("hubble did not exit after terminate, killing it")
            proc.kill()
            proc.wait()

    def _record(self, decoder: HubbleJsonDecoder, flows: List[FlowRecord]) -> None:
        self._collected += len(flows)
        self._skipped += decoder.stats.lines - decoder.stats.flows

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "binary": self.binary,
            "runs": self._runs,
            "collected": self._collected,
            "skipped": self._skipped,
            "last_error": self._last_error,
        }


def build_capability() -> Capability:
    return HubbleCliCapability(binary=load_settings().hubble_bin)
