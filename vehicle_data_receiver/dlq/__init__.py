"""
Poison-record sink
Holds failed events that are excluded from automatic retry
"""

from vehicle_data_receiver.dlq.writer import PoisonEventWriter

__all__ = ["PoisonEventWriter"]
