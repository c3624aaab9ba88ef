"""
Glue between HTTP responses and parsers.

Result types are associated with parsers in a ParserRegistry, either
directly or with the ``response_parser`` class decorator. The
ResponseAdapter looks the parser up and runs it over a response body.
"""

import logging
import threading
from typing import Callable, Dict, Optional, Type, TypeVar, Union

import httpx

from .parser import DEFAULT_CHARSET, Parser

logger = logging.getLogger(__name__)

V = TypeVar("V")

ParserSource = Union[Parser, Callable[[], Parser]]


class ParserRegistry:
    """Maps result types to the parser that produces them."""

    def __init__(self):
        self._sources: Dict[type, ParserSource] = {}
        self._resolved: Dict[type, Parser] = {}
        self._lock = threading.Lock()

    def register(self, result_type: type, parser: ParserSource) -> None:
        """Associate `result_type` with a parser or a zero-argument parser factory."""
        with self._lock:
            self._sources[result_type] = parser
            self._resolved.pop(result_type, None)

    def lookup(self, result_type: type) -> Optional[Parser]:
        """Parser registered for `result_type`, or None."""
        with self._lock:
            if result_type in self._resolved:
                return self._resolved[result_type]
            source = self._sources.get(result_type)
        if source is None:
            return None
        # Factories run unlocked and may look up other types.
        parser = source if isinstance(source, Parser) else source()
        with self._lock:
            if self._sources.get(result_type) is not source:
                return parser
            return self._resolved.setdefault(result_type, parser)

    def __contains__(self, result_type: type) -> bool:
        return result_type in self._sources


default_registry = ParserRegistry()


def response_parser(parser: ParserSource, registry: Optional[ParserRegistry] = None):
    """Class decorator registering `parser` as the parser for the class."""
    target = registry if registry is not None else default_registry

    def decorate(cls):
        target.register(cls, parser)
        return cls

    return decorate


class ResponseAdapter:
    """Turns response bodies into parsed results."""

    def __init__(
        self,
        registry: Optional[ParserRegistry] = None,
        base_url: Optional[str] = None,
        default_charset: str = DEFAULT_CHARSET,
    ):
        self.registry = registry if registry is not None else default_registry
        self.base_url = base_url
        self.default_charset = default_charset

    def charset_of(self, content_type: Optional[str]) -> str:
        """Charset declared in a Content-Type header, or the default."""
        if content_type:
            for param in content_type.split(";")[1:]:
                name, _, value = param.partition("=")
                if name.strip().lower() == "charset" and value.strip():
                    return value.strip().strip('"').strip("'")
        return self.default_charset

    def convert(
        self,
        result_type: Type[V],
        body: bytes,
        content_type: Optional[str] = None,
        url: str = "",
    ) -> Optional[V]:
        """
        Parse `body` with the parser registered for `result_type`.

        Returns:
            The parsed result, or None when no parser is registered
        """
        parser = self.registry.lookup(result_type)
        if parser is None:
            logger.debug("No parser registered for %s", result_type.__name__)
            return None
        return self.parse_with(parser, body, content_type, url)

    def parse_with(
        self,
        parser: Parser[V],
        body: bytes,
        content_type: Optional[str] = None,
        url: str = "",
    ) -> V:
        return self._run(parser, body, self.charset_of(content_type), url)

    def _run(self, parser: Parser[V], body: bytes, charset: str, url: str) -> V:
        base_url = self.base_url if self.base_url is not None else url
        result = parser.parse_document(body, charset, base_url)
        logger.debug("Conversion result for %s: %r", base_url or "<no url>", result)
        return result

    def convert_response(self, response: httpx.Response, result_type: Type[V]) -> Optional[V]:
        """Parse an httpx response into `result_type`, None if unregistered."""
        parser = self.registry.lookup(result_type)
        if parser is None:
            logger.debug("No parser registered for %s", result_type.__name__)
            return None
        return self.parse_response(response, parser)

    def parse_response(self, response: httpx.Response, parser: Parser[V]) -> V:
        charset = response.charset_encoding or self.default_charset
        return self._run(parser, response.content, charset, str(response.url))

