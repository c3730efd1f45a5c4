import os


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """
    Configuration class for environment variables and default settings.
    """

    # How long a probe result is served from cache before a target is re-probed
    CACHE_TTL_MS = int(os.environ.get("STATUS_CACHE_TTL_MS", "10000"))

    PROBE_TIMEOUT_MS = int(os.environ.get("STATUS_PROBE_TIMEOUT_MS", "5000"))
    # Browser-like UA; some targets answer non-browser clients with a block page or a reset
    PROBE_USER_AGENT = os.environ.get(
        "STATUS_PROBE_USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    )
    # Off by default so self-signed certs and bare-IP HTTPS targets still count as reachable
    PROBE_VERIFY_TLS = _env_flag("STATUS_PROBE_VERIFY_TLS", "false")
    PROBE_FOLLOW_REDIRECTS = _env_flag("STATUS_PROBE_FOLLOW_REDIRECTS", "true")

    API_PATH = os.environ.get("STATUS_API_PATH", "/api/status")

    # Cross-origin headers attached to every response
    ALLOW_ORIGIN = os.environ.get("STATUS_ALLOW_ORIGIN", "*")
    ALLOW_METHODS = "GET,OPTIONS,POST"
    ALLOW_HEADERS = "Content-Type"
    ALLOW_CREDENTIALS = "true"
