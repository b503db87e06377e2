"""
Retry policy and coordinator for dead-lettered failed events
"""

from vehicle_data_receiver.retry.coordinator import RetryCoordinator, RetryPassResult
from vehicle_data_receiver.retry.policy import RetryPolicy, calculate_backoff, retry_with_policy

__all__ = [
    "RetryCoordinator",
    "RetryPassResult",
    "RetryPolicy",
    "calculate_backoff",
    "retry_with_policy",
]
