"""
Joint Stream

Polls a PLC over Modbus TCP, decodes robot joint angles from a fixed
holding-register block and streams them to connected viewers.

Components:
1. Device Link - owns the Modbus session (device/)
2. Sampler - read-and-decode plus per-viewer subscriptions (sampler/)
3. API - health, on-demand read and WebSocket stream (api/)
"""

__version__ = "1.0.0"
