from __future__ import annotations
import json
import logging
import socket
import time
from typing import Any, Dict, Optional, List

from flow_telemetry_mcp.core.capability_base import Capability
from flow_telemetry_mcp.core.config import load_settings
from flow_telemetry_mcp.core.errors import CollectionCancelled, CollectionFailed
from flow_telemetry_mcp.core.models import FlowRecord
from flow_telemetry_mcp.capabilities.hubble_json.decoder import HubbleJsonDecoder

log = logging.getLogger("flow_telemetry_mcp.capabilities.json_udp")


class JsonUdpCapability:
    """
    JSON over UDP capability.

    Listens on host:port for the collection window and decodes every
    datagram as Hubble JSON. A datagram may hold one JSON object, a JSON
    list of objects, or several newline separated objects. This lets a
    relay or the sample script in scripts/ push flows without the Hubble
    CLI installed locally.
    """

    name = "json_udp"

    def __init__(self, host: str = "0.0.0.0", port: int = 6343, poll_seconds: float = 0.2):
        self._host = host
        self._port = int(port)
        self._poll_seconds = float(poll_seconds)

        self._ingested = 0
        self._dropped = 0

    def collect(self, namespace: Optional[str], duration_seconds: int) -> List[FlowRecord]:
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.bind((self._host, self._port))
        except OSError as e:
            raise CollectionFailed(f"could not bind UDP {self._host}:{self._port}: {e}") from e

        sock.settimeout(self._poll_seconds)
        deadline = time.monotonic() + float(duration_seconds)
        decoder = HubbleJsonDecoder(namespace=namespace)
        flows: List[FlowRecord] = []
        log.info("listening for json flows on %s:%s for %ss", self._host, self._port, duration_seconds)

        try:
            while time.monotonic() < deadline:
                try:
                    data, _ = sock.recvfrom(65535)
                except socket.timeout:
                    continue

                got = self._decode(data, decoder)
                if got:
                    flows.extend(got)
                    self._ingested += len(got)
                else:
                    self._dropped += 1
        except KeyboardInterrupt:
            raise CollectionCancelled(flows)
        finally:
            sock.close()

        if decoder.stats.nothing_parseable():
            raise CollectionFailed(
                f"received {decoder.stats.lines} datagram lines on UDP {self._port} "
                f"but none were valid JSON"
            )
        return flows

    def _decode(self, data: bytes, decoder: Optional[HubbleJsonDecoder] = None) -> List[FlowRecord]:
        """
        Decode one datagram into FlowRecord objects.

        A top level JSON list is split into one line per element so the
        shared decoder sees the same shape as `hubble observe -o json`.
        Anything unparseable yields an empty list.
        """
        decoder = decoder or HubbleJsonDecoder()
        text = data.decode("utf-8", errors="ignore").strip()
        if text.startswith("["):
            try:
                items = json.loads(text)
            except ValueError:
                items = None
            if isinstance(items, list):
                return decoder.feed_many(json.dumps(item) for item in items)
        return decoder.feed_many(text.splitlines())

    def status(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "host": self._host,
            "port": self._port,
            "ingested": self._ingested,
            "dropped": self._dropped,
        }


def build_capability() -> Capability:
    settings = load_settings()
    return JsonUdpCapability(host=settings.udp_host, port=settings.udp_port)
