"""Project-wide constants (chunk size, fingerprint sample window, defaults)."""

CHUNK_SIZE_BYTES: int = 1 * 1024 * 1024  # 1 MiB default chunk size
SAMPLE_WINDOW_BYTES: int = 2 * 1024 * 1024  # 2 MiB per fingerprint window

MAX_CHUNK_BYTES: int = 64 * 1024 * 1024
MAX_FINGERPRINT_LENGTH: int = 128
MAX_FILE_NAME_LENGTH: int = 255

DEFAULT_SERVER_PORT: int = 3000
DEFAULT_UPLOAD_DIR: str = "./upload"
DEFAULT_LOCK_TIMEOUT_SECONDS: float = 30.0

# Query/form field names shared by the client and the server.
CHUNK_FORM_FIELD: str = "file"
ASSETS_URL_PREFIX: str = "/assets"
