"""
Fetch configuration and logging setup.

Values come from keyword overrides first, then the environment (a .env
file is loaded if present), then the defaults below.
"""

import logging
import os
from typing import Any, Dict

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ENVIRONMENT = {
    "user_agent": "SELEXTRACT_USER_AGENT",
    "timeout": "SELEXTRACT_TIMEOUT",
    "max_pages": "SELEXTRACT_MAX_PAGES",
    "delay": "SELEXTRACT_DELAY",
    "charset": "SELEXTRACT_CHARSET",
}


class FetchConfig(BaseModel):
    """Settings for fetching pages over HTTP."""
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = Field(30.0, gt=0)
    max_pages: int = Field(50, ge=1)
    delay: float = Field(0.5, ge=0)
    charset: str = "utf-8"
    headers: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides: Any) -> "FetchConfig":
        """Build a config from SELEXTRACT_* variables plus non-None overrides."""
        values: Dict[str, Any] = {}
        for field_name, variable in ENVIRONMENT.items():
            raw = os.getenv(variable)
            if raw:
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def request_headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
        headers.update(self.headers)
        return headers


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
