"""
chains - Cross-network transport.
"""

from chains.bridges import Bridge, BridgeRegistry, SimulatedBridge

__all__ = [
    "Bridge",
    "BridgeRegistry",
    "SimulatedBridge",
]
