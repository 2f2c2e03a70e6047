"""
Audio quality identifiers and their fallback ordering.
"""

from enum import IntEnum


class Quality(IntEnum):
    """Qobuz format ids, as sent in the ``format_id`` request parameter."""

    MP3 = 5
    CD = 6
    HI_RES = 7
    HI_RES_MAX = 27

    @classmethod
    def fallback_order(cls) -> list["Quality"]:
        """All qualities from highest to lowest fidelity."""
        return [cls.HI_RES_MAX, cls.HI_RES, cls.CD, cls.MP3]

    @classmethod
    def from_user_code(cls, code: int) -> "Quality":
        """Translates a user-friendly code (1-4) into a Quality."""
        for quality, info in QUALITY_INFO.items():
            if info["user_code"] == code:
                return quality
        raise ValueError(
            "Quality must be one of 1 (MP3), 2 (CD), 3 (Hi-Res), 4 (Hi-Res+)."
        )

    @property
    def user_code(self) -> int:
        return QUALITY_INFO[self]["user_code"]

    @property
    def label(self) -> str:
        return QUALITY_INFO[self]["name"]

    @property
    def short_label(self) -> str:
        return QUALITY_INFO[self]["short"]

    @property
    def extension(self) -> str:
        return QUALITY_INFO[self]["ext"]


# Display metadata per format id
QUALITY_INFO = {
    Quality.MP3: {
        "name": "MP3 320kbps",
        "short": "MP3 320",
        "ext": "mp3",
        "color": "yellow",
        "user_code": 1,
    },
    Quality.CD: {
        "name": "CD Lossless (16/44.1)",
        "short": "16/44.1",
        "ext": "flac",
        "color": "green",
        "user_code": 2,
    },
    Quality.HI_RES: {
        "name": "Hi-Res (up to 24/96)",
        "short": "24/96",
        "ext": "flac",
        "color": "cyan",
        "user_code": 3,
    },
    Quality.HI_RES_MAX: {
        "name": "Hi-Res+ (up to 24/192)",
        "short": "24/192",
        "ext": "flac",
        "color": "magenta",
        "user_code": 4,
    },
}


def get_quality_color(format_id: int) -> str:
    """Rich color used when displaying a format id; unknown ids render white."""
    try:
        return QUALITY_INFO[Quality(format_id)]["color"]
    except ValueError:
        return "white"
