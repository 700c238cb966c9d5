"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_ENDPOINT_URL = "http://localhost:7000/convert"
DEFAULT_TIMEOUT_SECONDS = 5 * 60  # conversions can take time
DEFAULT_FIELD_NAME = "file"
DEFAULT_DOWNLOAD_NAME = "converted-file"

# Extensions accepted by the submission gate, and the format each one converts to
ALLOWED_EXTENSIONS = ("docx", "pdf")
TARGET_EXTENSION = {
    "docx": "pdf",
    "pdf": "docx",
}


class ConverterConfig(BaseModel):
    """A validated configuration model for the application."""

    # Conversion service
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    field_name: str = DEFAULT_FIELD_NAME

    # Download Settings
    output_dir: str = "."
    overwrite: bool = False

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Ensures the endpoint is an absolute HTTP(S) URL."""
        if not v.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"Endpoint URL must start with http:// or https://, but got: {v!r}"
            )
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Ensures a reasonable request timeout."""
        if v < 1 or v > 3600:
            raise ValueError("Timeout must be between 1 and 3600 seconds.")
        return v

    @field_validator("field_name", "output_dir")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Value cannot be empty.")
        return v

    @property
    def service_root(self) -> str:
        """The base URL of the service, used for health checks."""
        scheme, _, rest = self.endpoint_url.partition("://")
        host = rest.split("/", 1)[0]
        return f"{scheme}://{host}/"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
