"""Runtime configuration for the harnesses and the AMP reporting client.

Values come from environment variables. The CLI loads a .env file with
python-dotenv before reading them; library code never does.
"""

from __future__ import annotations

import os
from urllib.parse import quote

from pydantic import BaseModel

DEFAULT_AMP_HOST = "amp.levelaccess.net"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Standards kept when attaching best-practice data to a concern.
DEFAULT_ACCESSIBILITY_STANDARD_IDS: tuple[int, ...] = (
    1140,  # Section 508 and 255 (Revised 2017)
    610,   # WCAG 2.0 Level A
    1471,  # WCAG 2.0 Level A & AA Baseline
    611,   # WCAG 2.0 Level AA
    612,   # WCAG 2.0 Level AAA
    1387,  # WCAG 2.1 Level A
    1388,  # WCAG 2.1 Level AA
    1389,  # WCAG 2.1 Level AAA
)

# Media type IDs as defined in AMP
WEB_MEDIA_TYPE_ID = 1

PUBLIC_URLS: dict[str, str] = {
    "google": "https://www.google.com",
    "twitter": "https://twitter.com",
}

REPORTS_DIR = os.environ.get("A11Y_REPORTS_DIR", "reports")
ACCESS_ENGINE_PATH = os.environ.get("ACCESS_ENGINE_PATH", "AccessEngine.pro.js")


class AmpSettings(BaseModel, frozen=True):
    """Connection settings for an AMP instance."""
    host: str = DEFAULT_AMP_HOST
    api_token: str | None = None
    proxy_host: str | None = None
    proxy_port: int | None = None
    proxy_username: str | None = None
    proxy_password: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> AmpSettings:
        port = os.environ.get("AMP_PROXY_PORT", "")
        return cls(
            host=os.environ.get("AMP_HOST", "") or DEFAULT_AMP_HOST,
            api_token=os.environ.get("AMP_API_TOKEN") or None,
            proxy_host=os.environ.get("AMP_PROXY_HOST") or None,
            proxy_port=int(port) if port else None,
            proxy_username=os.environ.get("AMP_PROXY_USERNAME") or None,
            proxy_password=os.environ.get("AMP_PROXY_PASSWORD") or None,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.host}"

    @property
    def proxy_url(self) -> str | None:
        """HTTP proxy URL with basic-auth credentials, or None without a proxy host."""
        if not self.proxy_host:
            return None
        auth = ""
        if self.proxy_username:
            auth = quote(self.proxy_username, safe="")
            auth += ":" + quote(self.proxy_password or "", safe="")
            auth += "@"
        port = f":{self.proxy_port}" if self.proxy_port else ""
        return f"http://{auth}{self.proxy_host}{port}"
