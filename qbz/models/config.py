"""
Pydantic model for client configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

from qbz.models.quality import Quality


class ClientConfig(BaseModel):
    """A validated configuration model for the client layer."""

    # Authentication
    email: str = ""
    password: str = ""  # This will be the MD5 hash
    token: str = ""

    # Streaming
    quality: int = Quality.CD.value

    # Audio cache and prefetching
    cache_size_mb: int = 500
    prefetch_queue_size: int = 10

    # Network
    request_timeout: float = 60.0
    download_timeout: float = 120.0
    download_connect_timeout: float = 10.0
    bundle_retries: int = 3

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v: int) -> int:
        """
        Ensures quality is a valid user code (1-4) or format id and translates it
        to the format id.
        """
        if v in (1, 2, 3, 4):
            return Quality.from_user_code(v).value
        if v not in {q.value for q in Quality}:
            raise ValueError(
                "Quality must be one of 1 (MP3), 2 (CD), 3 (Hi-Res), 4 (Hi-Res+)."
            )
        return v

    @field_validator("cache_size_mb")
    @classmethod
    def validate_cache_size(cls, v: int) -> int:
        if v < 1 or v > 16384:
            raise ValueError("Cache size must be between 1 and 16384 MB.")
        return v

    @field_validator("prefetch_queue_size")
    @classmethod
    def validate_queue_size(cls, v: int) -> int:
        if v < 1 or v > 100:
            raise ValueError("Prefetch queue size must be between 1 and 100.")
        return v

    @field_validator("bundle_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("Bundle retries must be between 1 and 10.")
        return v

    @field_validator("request_timeout", "download_timeout", "download_connect_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @property
    def preferred_quality(self) -> Quality:
        return Quality(self.quality)

    @property
    def cache_size_bytes(self) -> int:
        return self.cache_size_mb * 1024 * 1024

    @property
    def has_credentials(self) -> bool:
        """True when either a token or an email/password pair is configured."""
        has_token = bool(self.token)
        has_email_pass = bool(self.email and self.password)
        return has_token or has_email_pass

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
