"""
Pydantic Settings Models for Vehicle Data Receiver Configuration
Every value can be overridden with a VDR_* environment variable
"""

from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ROUTES: Dict[str, str] = {
    "speed": "/v1/trucks/{truck_id}/speeds",
    "location": "/v1/trucks/{truck_id}/locations",
    "odometer_reading": "/v1/trucks/{truck_id}/odometerReadings",
    "driver_card": "/v1/trucks/{truck_id}/driverCards",
    "drive_state": "/v1/trucks/{truck_id}/driveStates",
    "temperature_readings": "/v1/temperatureReadings",
}


class DatabaseSettings(BaseSettings):
    """Failed event store (PostgreSQL) configuration"""

    connection_url: str = Field(
        default="postgresql://localhost:5432/vehicle_data_receiver",
        description="libpq connection URL of the failed event database",
    )
    connect_timeout: float = Field(default=10.0, gt=0, le=300)
    create_schema: bool = Field(default=True, description="Create the failed_event table on startup")

    model_config = SettingsConfigDict(env_prefix="VDR_DATABASE_")


class CoordinatorSettings(BaseSettings):
    """Retry coordinator tuning parameters"""

    batch_size: int = Field(default=100, ge=1, le=10000, description="Records attempted per pass")
    page_size: int = Field(default=100, ge=1, le=10000, description="Records read per page")
    max_pages: int = Field(default=10, ge=1, le=1000, description="Pages read per pass")
    interval_seconds: float = Field(default=60.0, gt=0, description="Pause between passes")
    handler_timeout_seconds: float = Field(default=10.0, gt=0, le=600)
    pass_timeout_seconds: float = Field(default=300.0, gt=0)

    model_config = SettingsConfigDict(env_prefix="VDR_COORDINATOR_")


class RetrySettings(BaseSettings):
    """Per-record backoff and quarantine configuration"""

    max_attempts: int = Field(default=10, ge=1, le=1000, description="Attempts before quarantine")
    base_delay_seconds: float = Field(default=60.0, ge=0, description="Delay after first failure")
    max_delay_seconds: float = Field(default=3600.0, ge=0, description="Maximum retry delay cap")
    backoff_multiplier: float = Field(
        default=2.0, ge=1.0, le=10.0, description="Exponential backoff multiplier"
    )
    jitter: bool = Field(default=False, description="Add random jitter (±25%)")

    model_config = SettingsConfigDict(env_prefix="VDR_RETRY_")


class PoisonSettings(BaseSettings):
    """Quarantined record sink configuration"""

    enabled: bool = Field(default=True)
    directory: str = Field(default="data/poison", description="Directory for poison JSONL files")

    model_config = SettingsConfigDict(env_prefix="VDR_POISON_")


class VehicleManagementSettings(BaseSettings):
    """Vehicle management service the forwarding handlers call"""

    base_url: str = Field(default="http://localhost:8000")
    api_key: str = Field(default="", description="Sent in the X-API-Key header")
    timeout_seconds: float = Field(default=10.0, gt=0, le=600)
    routes: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_ROUTES),
        description="Handler name to request path template",
    )

    model_config = SettingsConfigDict(env_prefix="VDR_VEHICLE_MANAGEMENT_")


class ObservabilitySettings(BaseSettings):
    """Metrics, logging, and tracing configuration"""

    metrics_port: int = Field(default=9090, ge=1024, le=65535)
    health_check_port: int = Field(default=8080, ge=1024, le=65535)
    health_check_interval_seconds: int = Field(default=30, ge=1, le=3600)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_format: str = Field(default="json", pattern="^(json|console)$")
    enable_tracing: bool = Field(default=False)
    enable_console_traces: bool = Field(default=False)

    model_config = SettingsConfigDict(env_prefix="VDR_")


class ReceiverSettings(BaseSettings):
    """Complete vehicle data receiver configuration"""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    coordinator: CoordinatorSettings = Field(default_factory=CoordinatorSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    poison: PoisonSettings = Field(default_factory=PoisonSettings)
    vehicle_management: VehicleManagementSettings = Field(default_factory=VehicleManagementSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_prefix="VDR_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )
