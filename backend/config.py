"""
Engine configuration is read from the environment. A .env file in the
backend root is loaded automatically using python-dotenv:

AUDIT_REQUEST_TIMEOUT_SECONDS=12
PAGESPEED_API_KEY=your_key_here
"""

from dataclasses import dataclass
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36 SiteAuditBot/1.0"
)
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in {
        "0",
        "false",
        "no",
        "off",
    }


@dataclass(frozen=True)
class EngineSettings:
    """Runtime knobs for network access and parallelism."""

    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 12.0
    probe_timeout: float = 8.0
    # page_workers + probe_workers bounds in-flight requests per run; keep
    # the sum within the Session pool size of 10.
    page_workers: int = 6
    probe_workers: int = 4
    redirect_sample_size: int = 10
    pagespeed_enabled: bool = True
    pagespeed_api_key: str = ""
    pagespeed_timeout: float = 45.0


def load_settings() -> EngineSettings:
    """Build EngineSettings from the current environment."""
    return EngineSettings(
        user_agent=os.getenv("AUDIT_USER_AGENT", "").strip() or DEFAULT_USER_AGENT,
        request_timeout=float(os.getenv("AUDIT_REQUEST_TIMEOUT_SECONDS", "12")),
        probe_timeout=float(os.getenv("AUDIT_PROBE_TIMEOUT_SECONDS", "8")),
        page_workers=max(1, int(os.getenv("AUDIT_PAGE_WORKERS", "6"))),
        probe_workers=max(1, int(os.getenv("AUDIT_PROBE_WORKERS", "4"))),
        redirect_sample_size=max(0, int(os.getenv("AUDIT_REDIRECT_SAMPLE_SIZE", "10"))),
        pagespeed_enabled=_env_flag("PAGESPEED_ENABLED", "1"),
        pagespeed_api_key=os.getenv("PAGESPEED_API_KEY", "").strip(),
        pagespeed_timeout=float(os.getenv("PAGESPEED_TIMEOUT_SECONDS", "45")),
    )


def configure_logging() -> None:
    """Attach a stream handler to the root logger once."""
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root.addHandler(handler)
