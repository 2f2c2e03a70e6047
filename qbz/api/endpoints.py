"""
Endpoint paths of the Qobuz JSON API (v0.2).
"""

BASE_URL = "https://www.qobuz.com/api.json/0.2/"

ALBUM_GET = "album/get"
ALBUM_SEARCH = "album/search"
ARTIST_GET = "artist/get"
ARTIST_SEARCH = "artist/search"
TRACK_GET = "track/get"
TRACK_SEARCH = "track/search"
TRACK_GET_FILE_URL = "track/getFileUrl"
PLAYLIST_GET = "playlist/get"
PLAYLIST_SEARCH = "playlist/search"
PLAYLIST_GET_USER_PLAYLISTS = "playlist/getUserPlaylists"
USER_LOGIN = "user/login"
USER_GET = "user/get"
FAVORITE_GET_USER_FAVORITES = "favorite/getUserFavorites"
FAVORITE_CREATE = "favorite/create"
FAVORITE_DELETE = "favorite/delete"

# Endpoints whose requests carry request_ts/request_sig
SIGNED_ENDPOINTS = frozenset({TRACK_GET_FILE_URL, FAVORITE_GET_USER_FAVORITES})


def build_url(path: str, base_url: str = BASE_URL) -> str:
    return base_url + path
