"""
Text extraction and type coercion for matched nodes.

Every coercion is total: malformed or missing input becomes the zero value
of the target type instead of raising.
"""

import math
import re
import struct
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Callable, Optional
from urllib.parse import urljoin


INT_MIN, INT_MAX = -(2 ** 31), 2 ** 31 - 1
LONG_MIN, LONG_MAX = -(2 ** 63), 2 ** 63 - 1
EPOCH = datetime(1970, 1, 1)

_INTEGER = re.compile(r"[+-]?[0-9]+")
_DECIMAL = re.compile(
    r"[+-]?(?:NaN|Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)[fFdD]?"
)

_base_url: ContextVar[str] = ContextVar("selextract_base_url", default="")


def current_base_url() -> str:
    """Base URL of the document currently being parsed, or ''."""
    return _base_url.get()


def bind_base_url(url: str):
    """Bind the base URL for the running parse. Returns a reset token."""
    return _base_url.set(url or "")


def reset_base_url(token) -> None:
    _base_url.reset(token)


def node_text(node: Any) -> str:
    """Text content of a node with whitespace collapsed, '' for no node."""
    if node is None:
        return ""
    text = node.text(deep=True) or ""
    return " ".join(text.split())


def attribute(name: str) -> Callable[[Any], str]:
    """Extractor returning the value of attribute `name`, or ''."""

    def extract(node: Any) -> str:
        if node is None:
            return ""
        value = node.attributes.get(name)
        return value if value is not None else ""

    return extract


def absolute_url(name: str = "href") -> Callable[[Any], str]:
    """Extractor resolving attribute `name` against the document base URL."""
    raw = attribute(name)

    def extract(node: Any) -> str:
        value = raw(node).strip()
        if not value:
            return ""
        return urljoin(current_base_url(), value)

    return extract


def to_str(text: Optional[str]) -> str:
    return text if text is not None else ""


def _integer(text: Optional[str], low: int, high: int) -> int:
    if not text:
        return 0
    text = text.strip()
    if not _INTEGER.fullmatch(text):
        return 0
    value = int(text)
    return value if low <= value <= high else 0


def to_int(text: Optional[str]) -> int:
    """Parse a 32-bit integer, 0 on failure or overflow."""
    return _integer(text, INT_MIN, INT_MAX)


def to_long(text: Optional[str]) -> int:
    """Parse a 64-bit integer, 0 on failure or overflow."""
    return _integer(text, LONG_MIN, LONG_MAX)


def to_double(text: Optional[str]) -> float:
    """Parse a decimal literal, 0.0 on failure."""
    if not text:
        return 0.0
    text = text.strip()
    if not _DECIMAL.fullmatch(text):
        return 0.0
    literal = text.rstrip("fFdD")
    if literal.lstrip("+-") == "NaN":
        return math.nan
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def to_float(text: Optional[str]) -> float:
    """Parse a decimal literal rounded to single precision, 0.0 on failure."""
    value = to_double(text)
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def to_date(text: Optional[str], fmt: str = "%Y-%m-%d", default: datetime = EPOCH) -> datetime:
    """Parse `text` with a strptime format, `default` on failure."""
    if not text:
        return default
    try:
        return datetime.strptime(text.strip(), fmt)
    except ValueError:
        return default
