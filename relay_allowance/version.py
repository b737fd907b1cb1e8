"""
Version helpers for relay-allowance.
We keep a static __version__ (PEP 440) and expose a user-agent string for the
JSON-RPC client.
"""

from __future__ import annotations

# Bump this when publishing
__version__ = "0.1.0"


def user_agent() -> str:
    return f"relay-allowance/{__version__}"


__all__ = ["__version__", "user_agent"]
