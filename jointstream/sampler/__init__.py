"""
Sampler - register block decoding and per-viewer subscriptions
"""

from .layout import (
    DEFAULT_LAYOUT,
    JointMeasurement,
    RegisterLayout,
    ToolPosition,
    decode_block,
    decode_tool_position,
    encode_joints,
)
from .sampler import Sampler
from .subscriptions import Subscription, SubscriptionRegistry

__all__ = [
    "DEFAULT_LAYOUT",
    "JointMeasurement",
    "RegisterLayout",
    "ToolPosition",
    "decode_block",
    "decode_tool_position",
    "encode_joints",
    "Sampler",
    "Subscription",
    "SubscriptionRegistry",
]
