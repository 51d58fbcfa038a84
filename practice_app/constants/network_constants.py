"""Network configuration constants for the practice API client."""

DEFAULT_API_BASE_URL: str = "https://backend.impulselc.uz/api"
REQUEST_TIMEOUT_SECONDS: float = 30.0
QUESTION_PAGE_LIMIT: int = 100
