"""
Receiver configuration: pydantic settings models and the YAML loader
"""

from vehicle_data_receiver.config.loader import load_config, load_yaml_config, merge_configs
from vehicle_data_receiver.config.settings import (
    CoordinatorSettings,
    DatabaseSettings,
    ObservabilitySettings,
    PoisonSettings,
    ReceiverSettings,
    RetrySettings,
    VehicleManagementSettings,
)

__all__ = [
    "CoordinatorSettings",
    "DatabaseSettings",
    "ObservabilitySettings",
    "PoisonSettings",
    "ReceiverSettings",
    "RetrySettings",
    "VehicleManagementSettings",
    "load_config",
    "load_yaml_config",
    "merge_configs",
]
