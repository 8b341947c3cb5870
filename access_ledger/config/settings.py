# access_ledger/config/settings.py

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "access-ledger"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"

    # --- Storage (in-memory repositories when unset) ---
    database_url: Optional[str] = None
    redis_url: Optional[str] = None
    rabbitmq_url: Optional[str] = None

    # --- Authorization ---
    super_role_slugs: List[str] = Field(default_factory=lambda: ["super-admin"])
    legacy_permissions_enabled: bool = True
    permission_store_timeout_seconds: float = Field(2.0, gt=0)
    permission_store_failure_threshold: int = Field(5, ge=1)
    permission_store_recovery_seconds: float = Field(30.0, gt=0)
    # Created at startup with the first super role if it does not exist yet.
    bootstrap_principal_id: Optional[str] = None

    # --- Audit chain ---
    audit_append_max_retries: int = Field(5, ge=1)
    audit_append_timeout_seconds: float = Field(5.0, gt=0)
    read_allow_audit: Literal["none", "sampled", "all"] = "sampled"
    read_allow_audit_per_window: int = Field(1, ge=1)
    read_allow_audit_window_seconds: int = Field(60, ge=1)

    # --- Integrity sweep (0 disables) ---
    integrity_sweep_interval_seconds: int = Field(0, ge=0)
    integrity_sweep_lock_ttl: int = Field(300, ge=1)

    # --- Observability ---
    enable_metrics: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
