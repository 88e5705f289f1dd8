"""
Configuration Settings.

This module defines the application configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class SandboxSettings(BaseModel):
    """Sandboxed executor configuration."""

    enabled: bool = Field(
        default=True, alias="GATEKEEPER_AI_SANDBOX_ENABLED", description="Enforce sandbox policy on commands and files"
    )
    max_cpu_time_s: int = Field(
        default=60, alias="GATEKEEPER_AI_SANDBOX_MAX_CPU_TIME", description="Wall-clock timeout for commands (seconds)"
    )
    max_file_size_mb: int = Field(
        default=10, alias="GATEKEEPER_AI_SANDBOX_MAX_FILE_SIZE", description="Output and file read cap (MiB)"
    )
    allow_network: bool = Field(
        default=True, alias="GATEKEEPER_AI_SANDBOX_ALLOW_NETWORK", description="Allow outbound network access"
    )

    model_config = {"populate_by_name": True}


class ApprovalSettings(BaseModel):
    """Approval policy defaults."""

    auto_approve_low_risk: bool = Field(
        default=True, alias="GATEKEEPER_AI_AUTO_APPROVE_LOW_RISK", description="Approve low-risk operations silently"
    )
    auto_approve_medium_risk: bool = Field(
        default=False,
        alias="GATEKEEPER_AI_AUTO_APPROVE_MEDIUM_RISK",
        description="Approve medium-risk operations silently",
    )
    confirm_high_risk: bool = Field(
        default=True, alias="GATEKEEPER_AI_CONFIRM_HIGH_RISK", description="Ask before high-risk operations"
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Model
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Gatekeeper-AI Core Configuration
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="GATEKEEPER_AI_LOG_LEVEL",
    )
    project_root: str = Field(
        default=".",
        description="Root directory of the project the agent works on",
        alias="GATEKEEPER_AI_PROJECT_ROOT",
    )
    model: Optional[str] = Field(
        default=None,
        description="pydantic-ai model name (e.g. 'openai:gpt-4o'); unset disables completions",
        alias="GATEKEEPER_AI_MODEL",
    )
    max_refinements: int = Field(
        default=2,
        description="Maximum number of plan refinement rounds per run",
        alias="GATEKEEPER_AI_MAX_REFINEMENTS",
    )

    # =====================================================================
    # Database Configuration
    # =====================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///.gatekeeper/gatekeeper.db",
        description="Async SQLAlchemy URL for the audit log and checkpoint store",
        alias="GATEKEEPER_AI_DATABASE_URL",
    )

    # =====================================================================
    # Sandbox Configuration
    # =====================================================================
    sandbox_enabled: bool = Field(default=True, alias="GATEKEEPER_AI_SANDBOX_ENABLED")
    sandbox_max_cpu_time: int = Field(default=60, alias="GATEKEEPER_AI_SANDBOX_MAX_CPU_TIME")
    sandbox_max_file_size: int = Field(default=10, alias="GATEKEEPER_AI_SANDBOX_MAX_FILE_SIZE")
    sandbox_allow_network: bool = Field(default=True, alias="GATEKEEPER_AI_SANDBOX_ALLOW_NETWORK")

    # =====================================================================
    # Approval Configuration
    # =====================================================================
    auto_approve_low_risk: bool = Field(default=True, alias="GATEKEEPER_AI_AUTO_APPROVE_LOW_RISK")
    auto_approve_medium_risk: bool = Field(default=False, alias="GATEKEEPER_AI_AUTO_APPROVE_MEDIUM_RISK")
    confirm_high_risk: bool = Field(default=True, alias="GATEKEEPER_AI_CONFIRM_HIGH_RISK")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def sandbox(self) -> SandboxSettings:
        """Get sandbox configuration from environment variables."""
        return SandboxSettings.model_validate(self.model_dump(by_alias=True))

    @property
    def approval(self) -> ApprovalSettings:
        """Get approval policy configuration from environment variables."""
        return ApprovalSettings.model_validate(self.model_dump(by_alias=True))


settings = Settings()
