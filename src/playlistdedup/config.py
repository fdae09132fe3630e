"""Configuration and environment settings."""

import os
from dotenv import load_dotenv

# Force reload of environment variables
load_dotenv(override=True)

# Directory Settings
DATA_DIR = os.getenv("DATA_DIR", "data")
CREDENTIALS_DIR = os.getenv("CREDENTIALS_DIR", os.path.join(DATA_DIR, "credentials"))
TOKEN_FILE = os.getenv("PLAYLISTDEDUP_TOKEN_FILE", os.path.join(CREDENTIALS_DIR, "tokens.json"))

# Spotify API Settings
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET")
SPOTIFY_API_URL = os.getenv("SPOTIFY_API_URL", "https://api.spotify.com/v1")
SPOTIFY_TOKEN_URL = os.getenv("SPOTIFY_TOKEN_URL", "https://accounts.spotify.com/api/token")
DEFAULT_PLAYLIST_ID = os.getenv("SPOTIFY_PLAYLIST_ID")

# Service limits
PAGE_SIZE = 100  # Max items per playlist page read
MAX_BATCH_SIZE = 100  # Max items per add/remove call
REFRESH_MARGIN_SECONDS = int(os.getenv("REFRESH_MARGIN_SECONDS", "60"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
