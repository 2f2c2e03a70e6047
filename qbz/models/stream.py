"""
Pydantic models for the streaming-location endpoint.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class StreamRestriction(BaseModel):
    """A reason the backend gives for not serving the requested format."""

    class Config:
        """Pydantic model configuration."""

        extra = "allow"

    code: str = ""


class StreamUrl(BaseModel):
    """A resolved stream location for one track at one format."""

    url: str = ""
    format_id: int = 0
    mime_type: str = ""
    sampling_rate: float = 0.0
    bit_depth: Optional[int] = None
    track_id: int
    restrictions: list[StreamRestriction] = Field(default_factory=list)

    @property
    def has_restrictions(self) -> bool:
        """True when the URL is unusable for the requested quality."""
        return bool(self.restrictions)

    @classmethod
    def from_response(cls, track_id: int, payload: dict[str, Any]) -> "StreamUrl":
        """
        Builds a StreamUrl from a ``track/getFileUrl`` JSON body. Missing or
        null fields fall back to their defaults, and a malformed restrictions
        list is treated as empty.
        """
        restrictions = payload.get("restrictions") or []
        if not isinstance(restrictions, list):
            restrictions = []
        return cls(
            url=payload.get("url") or "",
            format_id=payload.get("format_id") or 0,
            mime_type=payload.get("mime_type") or "",
            sampling_rate=payload.get("sampling_rate") or 0.0,
            bit_depth=payload.get("bit_depth"),
            track_id=track_id,
            restrictions=[r for r in restrictions if isinstance(r, dict)],
        )
