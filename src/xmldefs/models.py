"""Base Pydantic models for configuration records.

This module defines the foundational model classes used by definitions,
scopes, and runtime settings. Records produced while reading a document
are immutable so that a registered definition cannot be changed behind
the registry's back.
"""

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all configuration records.

    Design principles enforced by this model:
        - Immutability: records cannot be modified after creation.
          Decorators that augment a definition return a new record.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in handler code.

    All record models must inherit from this class.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    This class serves as the root for settings models responsible for
    resolving runtime configuration (for example, environment variables,
    CI-provided values, or local overrides).

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored.
          This allows the surrounding environment to contain unrelated
          variables without breaking settings resolution.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
