"""
Authentication state produced by bundle extraction and login.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel


@dataclass(frozen=True)
class BundleTokens:
    """The app id and candidate secrets scraped from the web player bundle."""

    app_id: str
    secrets: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "secrets", tuple(self.secrets))


class UserSession(BaseModel):
    """A logged-in user, as returned by the login endpoint."""

    user_auth_token: str
    display_name: str
    subscription_label: str

    class Config:
        """Pydantic model configuration."""

        frozen = True
