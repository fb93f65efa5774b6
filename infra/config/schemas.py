"""
Configuration schemas for Scriptorium.

Defines the structure of the library configuration file.
All config is stored in ~/Documents/scriptorium/ (or BOOK_STORAGE_ROOT).
"""

from typing import Dict, Optional
from pydantic import BaseModel, Field, field_validator
import os
import re


class ProviderConfig(BaseModel):
    """Connection settings for the Gemini batch inference API."""
    base_url: str = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        description="REST base for model and batch endpoints"
    )
    upload_url: str = Field(
        "https://generativelanguage.googleapis.com/upload/v1beta/files",
        description="Resumable upload endpoint for JSONL batch inputs"
    )
    download_url: str = Field(
        "https://generativelanguage.googleapis.com/download/v1beta",
        description="Download endpoint for JSONL batch outputs"
    )
    request_timeout: float = Field(60.0, description="Seconds to wait for submit/poll/cancel responses")
    upload_timeout: float = Field(300.0, description="Seconds to wait for a JSONL upload")
    connect_timeout: float = Field(10.0, description="Seconds to wait for the TCP connection")
    image_timeout: float = Field(30.0, description="Seconds to wait for a page image download")
    max_retries: int = Field(3, description="Attempts for connection-level failures")
    backoff_base: float = Field(1.0, description="First backoff delay in seconds")
    backoff_max: float = Field(30.0, description="Ceiling for a single backoff delay")
    inline_limit_bytes: int = Field(
        20 * 1024 * 1024,
        description="Batches larger than this are uploaded as a JSONL file"
    )

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v):
        if v < 1:
            raise ValueError("max_retries must be at least 1")
        return v


class DefaultsConfig(BaseModel):
    """Default settings for batch jobs and pipelines."""
    model: str = Field("gemini-2.5-flash", description="Default inference model")
    language: str = Field("Latin", description="Default source language of scans")
    target_language: str = Field("English", description="Default translation target")
    license: str = Field("CC0-1.0", description="License applied to new editions")
    ocr_limit: int = Field(100, description="Pages per OCR batch submission")
    translate_limit: int = Field(500, description="Pages per translation batch submission")
    summary_page_limit: int = Field(50, description="Translated pages fed to the summarizer")
    summary_max_chars: int = Field(100000, description="Character budget for the summary prompt")
    split_sample_size: int = Field(5, description="Pages analysed by split_check for spreads")


class LibraryConfig(BaseModel):
    """
    Library-level configuration.

    Stored at: {storage_root}/config.yaml
    """
    api_keys: Dict[str, str] = Field(
        default_factory=dict,
        description="API keys (can use ${ENV_VAR} syntax)"
    )
    provider: ProviderConfig = Field(
        default_factory=ProviderConfig,
        description="Batch inference provider settings"
    )
    defaults: DefaultsConfig = Field(
        default_factory=DefaultsConfig,
        description="Default settings for jobs and pipelines"
    )

    def resolve_api_key(self, key_name: str) -> Optional[str]:
        """
        Resolve an API key, expanding ${ENV_VAR} references.

        Returns None if key not found or env var not set.
        """
        if key_name not in self.api_keys:
            return None

        value = resolve_env_vars(self.api_keys[key_name])
        return value or None

    @classmethod
    def with_defaults(cls) -> "LibraryConfig":
        """Create a config with sensible defaults."""
        return cls(
            api_keys={
                "gemini": "${GEMINI_API_KEY}",
            },
            provider=ProviderConfig(),
            defaults=DefaultsConfig(),
        )


def resolve_env_vars(value: str) -> str:
    """
    Resolve ${ENV_VAR} references in a string.

    Examples:
        "${GEMINI_API_KEY}" -> actual value from environment
        "literal-value" -> "literal-value"
        "${MISSING_VAR}" -> "" (empty string if not set)
    """
    if not isinstance(value, str):
        return value

    pattern = r'\$\{([^}]+)\}'

    def replace(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")

    return re.sub(pattern, replace, value)
