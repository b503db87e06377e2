"""
Codec for the durable text form of dead-lettered telemetry events
"""

from vehicle_data_receiver.codec.envelope import DecodeError, decode, encode

__all__ = ["DecodeError", "decode", "encode"]
