"""Auth constants."""

TOKEN_KEY = "token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user"

STORE_FILENAME = "credentials.json"
DEFAULT_MAX_RETRIES = 3
