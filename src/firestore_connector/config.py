"""Connection settings for the Firestore connector.

Credentials come from the hosting configuration layer, either as the plain
config dict handed to the connector or from environment variables.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from firestore_connector.errors import InvalidConfigError, MissingRequiredFieldError

DEFAULT_DATABASE = "(default)"
DEFAULT_BATCH_SIZE = 10
# Firestore rejects write batches with more than 500 operations.
MAX_BATCH_WRITES = 500
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

REQUIRED_FIELDS = ("project_id", "client_email", "private_key")


class FirestoreConfig(BaseModel):
    """Service account credentials and tuning for one Firestore database."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    project_id: str = Field(min_length=1)
    client_email: str = Field(min_length=1)
    private_key: str = Field(min_length=1)
    database_name: str = DEFAULT_DATABASE
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, le=MAX_BATCH_WRITES)
    token_uri: str = GOOGLE_TOKEN_URI

    @field_validator("private_key")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        # Keys pasted into env vars or JSON usually arrive with literal "\n".
        return value.replace("\\n", "\n")

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> FirestoreConfig:
        """Validate a plain connector config dict.

        Args:
            config: Configuration dictionary with:
                - project_id: Google Cloud project ID
                - client_email: Service account email
                - private_key: Service account private key (PEM)
                - database_name: Optional Firestore database, "(default)" if unset
                - batch_size: Optional page size for collection sweeps

        Returns:
            Validated FirestoreConfig.

        Raises:
            MissingRequiredFieldError: If a credential field is absent or empty.
            InvalidConfigError: If any value fails validation.
        """
        for field in REQUIRED_FIELDS:
            if not config.get(field):
                raise MissingRequiredFieldError(field)

        values = {key: value for key, value in config.items() if value is not None}
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or None
            raise InvalidConfigError(
                message=f"Invalid Firestore configuration: {first['msg']}",
                field=field,
            ) from e

    @classmethod
    def from_env(cls) -> FirestoreConfig:
        """Load settings from environment variables."""
        return cls.from_dict(
            {
                "project_id": os.getenv("FIRESTORE_PROJECT_ID", ""),
                "client_email": os.getenv("FIRESTORE_CLIENT_EMAIL", ""),
                "private_key": os.getenv("FIRESTORE_PRIVATE_KEY", ""),
                "database_name": os.getenv("FIRESTORE_DATABASE", DEFAULT_DATABASE),
                "batch_size": os.getenv("FIRESTORE_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)),
            }
        )

    def service_account_info(self) -> dict[str, str]:
        """Credential mapping accepted by google-auth's service account loader."""
        return {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": self.token_uri,
        }


def validate_batch_size(batch_size: int) -> int:
    """Check a sweep page size against the store's batch limit."""
    if not 1 <= batch_size <= MAX_BATCH_WRITES:
        raise InvalidConfigError(
            message=f"batch_size must be between 1 and {MAX_BATCH_WRITES}, got {batch_size}",
            field="batch_size",
        )
    return batch_size
