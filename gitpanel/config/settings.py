"""Configuration settings models using Pydantic."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUPPORTED_EXTENSIONS = [
    ".ipynb",
    ".py",
    ".md",
    ".txt",
    ".rst",
    ".json",
    ".yaml",
    ".yml",
    ".toml",
    ".cfg",
    ".ini",
    ".csv",
    ".js",
    ".ts",
    ".tsx",
    ".html",
    ".css",
    ".sh",
]


class BackendConfig(BaseModel):
    """Connection to the local Git backend service."""

    base_url: str = "http://127.0.0.1:8888"
    token: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0.0)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("base_url cannot be empty")
        return v.strip().rstrip("/")


class StagingConfig(BaseModel):
    """Configuration for staging behavior."""

    simple_staging: bool = False


class DiffConfig(BaseModel):
    """Configuration for diff views."""

    double_click_diff: bool = False
    supported_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_EXTENSIONS)
    )

    @field_validator("supported_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            normalized.append(ext)
        return normalized


class RemoteConfig(BaseModel):
    """Configuration for push/pull operations."""

    # None keeps prompting until the user cancels
    max_credential_attempts: Optional[int] = Field(default=None, ge=1)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITPANEL_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    backend: BackendConfig = Field(default_factory=BackendConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    diff: DiffConfig = Field(default_factory=DiffConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)

    def is_extension_supported(self, extension: str) -> bool:
        """Check if a file extension can be shown in a diff view."""
        return extension.lower() in self.diff.supported_extensions
