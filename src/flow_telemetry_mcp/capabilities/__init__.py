"""
Capabilities are pluggable collector sources that can be loaded at runtime.

Each capability must expose a build_capability factory in its capability module.
"""

__all__ = [
    "hubble_cli",
    "json_file",
    "json_udp",
]
