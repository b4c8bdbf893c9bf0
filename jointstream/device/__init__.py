"""
Device Link - Modbus Communication

Responsibilities:
- Own the single Modbus TCP session to the PLC
- Bounded reconnect attempts with connected/disconnected state
- Serialized holding-register reads
- Gated (disabled) joint write capability
"""

from .link_manager import LinkManager, LinkState, LinkStatus
from .modbus_client import ModbusClient
from .writer import DisabledWriter, JointWriter

__all__ = [
    "LinkManager",
    "LinkState",
    "LinkStatus",
    "ModbusClient",
    "DisabledWriter",
    "JointWriter",
]
