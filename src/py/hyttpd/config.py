from os import getenv

VERSION: str = "0.1.0"

PORT: int = int(getenv("PORT", 8000))

# The server is meant to be reachable from everywhere on the local network
HOST: str = getenv("HOST", "0.0.0.0")  # nosec: B104

LOG_REQUESTS: bool = getenv("HYTTPD_LOG_REQUESTS", "1") == "1"

# Minimum level of the diagnostic messages written to stderr
LOG_LEVEL: str = getenv("HYTTPD_LOG_LEVEL", "Info")

# Value of the `Server` header sent with every response
SERVER_VERSION: str = f"hyttpd/{VERSION}"

# Name substituted when a requested path ends at a directory boundary
DEFAULT_DOCUMENT: str = "index.html"

ERR_BAD_REQUEST: bytes = b"<html><body><h1>400 Bad Request</h1></body></html>"
ERR_NOT_FOUND: bytes = b"<html><body><h1>404 Not Found</h1></body></html>"
ERR_INTERNAL_SERVER_ERROR: bytes = (
	b"<html><body><h1>500 Internal Server Error</h1></body></html>"
)

# EOF
