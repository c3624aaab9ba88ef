"""
Parsers: ordered converters bound to one result type.

A parser is configured once through its registration methods and can then
parse any number of documents::

    parser = build_parser(GitHubPage, lambda p: (
        p.text(".p-name", "full_name")
         .text(".p-nickname", "username")
         .int(".Counter", "repositories")
    ))
    page = parser.parse_document(body, "utf-8", "https://github.com/")

Each registration takes either a field name or a ``(value, instance)``
callback as its target. Field names write with ``setattr`` (or item
assignment for dicts); collection and map targets are merged into the
existing container rather than replaced.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar, Union

from selectolax.parser import HTMLParser

from .coerce import (
    EPOCH,
    attribute,
    bind_base_url,
    node_text,
    reset_base_url,
    to_date,
    to_double,
    to_float,
    to_int,
    to_long,
    to_str,
)
from .converters import (
    CollectionConverter,
    Converter,
    MapConverter,
    NestedParserConverter,
    SelectorConverter,
    WholeSelectionConverter,
    field_merger,
    field_setter,
)
from .errors import EmptySelectorError, MissingFactoryError

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_CHARSET = "utf-8"

Target = Union[str, Callable[[Any, Any], None]]
NodeFunction = Callable[[Any], Any]


def _action(target: Target) -> Callable[[Any, Any], None]:
    if isinstance(target, str):
        return field_setter(target)
    if callable(target):
        return target
    raise TypeError(f"Target must be a field name or a callable, got {type(target).__name__}")


def _merge_action(target: Target) -> Callable[[Any, Any], None]:
    if isinstance(target, str):
        return field_merger(target)
    return _action(target)


def _extractor(extract: Optional[NodeFunction], attr: Optional[str]) -> NodeFunction:
    if extract is not None:
        return extract
    if attr:
        return attribute(attr)
    return node_text


def _identity(value: Any) -> Any:
    return value


class BaseParser:
    """Holds the ordered converters and the registration methods."""

    def __init__(self, strict: bool = False):
        self.strict = strict
        self._converters: List[Converter] = []

    @property
    def converters(self) -> Tuple[Converter, ...]:
        return tuple(self._converters)

    def add(self, converter: Converter) -> "BaseParser":
        """Append a converter. Registration order is execution order."""
        if self.strict and not converter.css:
            raise EmptySelectorError(f"Empty selector for {type(converter).__name__}")
        self._converters.append(converter)
        return self

    def apply(self, root: Any, instance: Any) -> None:
        """Run every converter against `root`, writing into `instance`."""
        if root is None:
            return
        for converter in self._converters:
            converter.convert(root, instance)

    def select(self, css: str, target: Target, extract: Optional[NodeFunction] = None) -> "BaseParser":
        """
        Pass the first node matching `css` (None if nothing matches) to the target.

        Args:
            css: CSS selector
            target: field name or ``(node, instance)`` callback
            extract: optional function applied to the node before it is passed on

        Returns:
            This parser, for chaining
        """
        return self.add(SelectorConverter(css, self._node_action(target, extract)))

    def selections(self, css: str, target: Target, extract: Optional[NodeFunction] = None) -> "BaseParser":
        """Pass every node matching `css` to the target, one call per node."""
        return self.add(SelectorConverter(css, self._node_action(target, extract), first_only=False))

    elements = selections

    def all_elements(self, css: str, target: Target) -> "BaseParser":
        """Pass the list of all nodes matching `css` to the target in one call."""
        return self.add(WholeSelectionConverter(css, _action(target)))

    def text(
        self,
        css: str,
        target: Target,
        attr: Optional[str] = None,
        extract: Optional[NodeFunction] = None,
    ) -> "BaseParser":
        """Text (or attribute `attr`) of the first match, '' when nothing matches."""
        return self._scalar(css, target, attr, extract, to_str)

    def date(
        self,
        css: str,
        target: Target,
        fmt: str = "%Y-%m-%d",
        attr: Optional[str] = None,
        extract: Optional[NodeFunction] = None,
        default: datetime = EPOCH,
    ) -> "BaseParser":
        """First match parsed with a strptime format, `default` on failure."""
        return self._scalar(css, target, attr, extract, lambda text: to_date(text, fmt, default))

    def collection(
        self,
        css: str,
        target: Target,
        transform: Union[NodeFunction, "Parser", None] = None,
    ) -> "BaseParser":
        """
        Accumulate one value per match into a list-like target.

        `transform` maps each node to a value (node text by default). When it
        is a Parser, every match is parsed into a fresh result instead.
        """
        if isinstance(transform, Parser):
            merge_into = _merge_action(target)
            return self.add(
                NestedParserConverter(
                    css,
                    transform,
                    lambda result, instance: merge_into([result], instance),
                    first_only=False,
                )
            )
        return self.add(CollectionConverter(css, transform or node_text, _merge_action(target)))

    def parser(
        self,
        css: str,
        nested: Union[Callable[["NestedParser"], Any], "NestedParser", "Parser"],
        target: Optional[Target] = None,
        first_only: bool = True,
    ) -> "BaseParser":
        """
        Run a nested parser on the node(s) matching `css`.

        A configure callable or a NestedParser writes into this parser's
        instance. A Parser produces its own result, which goes to `target`.
        """
        if isinstance(nested, Parser):
            if target is None:
                raise TypeError("A target is required when nesting a Parser with its own factory")
            return self.add(NestedParserConverter(css, nested, _action(target), first_only))

        if not isinstance(nested, NestedParser):
            configure = nested
            nested = NestedParser(strict=self.strict)
            configure(nested)
        return self.add(NestedParserConverter(css, nested, None, first_only))

    def _node_action(self, target: Target, extract: Optional[NodeFunction]) -> Callable[[Any, Any], None]:
        action = _action(target)
        if extract is None:
            return action

        def convert(node: Any, instance: Any) -> None:
            action(extract(node) if node is not None else None, instance)

        return convert

    def _scalar(
        self,
        css: str,
        target: Target,
        attr: Optional[str],
        extract: Optional[NodeFunction],
        coerce: Callable[[Optional[str]], Any],
    ) -> "BaseParser":
        read = _extractor(extract, attr)
        action = _action(target)

        def convert(node: Any, instance: Any) -> None:
            action(coerce(read(node) if node is not None else None), instance)

        return self.add(SelectorConverter(css, convert))

    # Methods below shadow builtins inside the class body.

    def map(
        self,
        css: str,
        target: Target,
        key: Optional[Callable[[Any], Any]] = None,
        value: Optional[Callable[[Any], Any]] = None,
        parser: Optional["Parser"] = None,
    ) -> "BaseParser":
        """
        Accumulate key/value pairs, one per match, into a dict-like target.

        Without `parser`, `key` and `value` are node functions (node text by
        default). With `parser`, each match is parsed first and `key`/`value`
        are applied to the parsed result (value defaults to the result itself).
        Later matches win on duplicate keys.
        """
        merge_into = _merge_action(target)
        if parser is not None:
            if key is None:
                raise TypeError("A key function is required when mapping parsed results")
            to_value = value or _identity
            return self.add(
                NestedParserConverter(
                    css,
                    parser,
                    lambda result, instance: merge_into({key(result): to_value(result)}, instance),
                    first_only=False,
                )
            )
        return self.add(MapConverter(css, key or node_text, value or node_text, merge_into))

    def int(self, css, target, attr=None, extract=None) -> "BaseParser":
        """First match as a 32-bit integer, 0 when missing or malformed."""
        return self._scalar(css, target, attr, extract, to_int)

    def long(self, css, target, attr=None, extract=None) -> "BaseParser":
        """First match as a 64-bit integer, 0 when missing or malformed."""
        return self._scalar(css, target, attr, extract, to_long)

    def float(self, css, target, attr=None, extract=None) -> "BaseParser":
        """First match as a single precision number, 0.0 when missing or malformed."""
        return self._scalar(css, target, attr, extract, to_float)

    def double(self, css, target, attr=None, extract=None) -> "BaseParser":
        """First match as a double precision number, 0.0 when missing or malformed."""
        return self._scalar(css, target, attr, extract, to_double)


class NestedParser(BaseParser):
    """Converters applied to a matched node, writing into the outer instance."""


class Parser(BaseParser, Generic[V]):
    """Extraction plan for one result type.

    `factory` is called once per parse to create the result instance.
    """

    def __init__(self, factory: Callable[[], V], strict: bool = False):
        if factory is None or not callable(factory):
            raise MissingFactoryError("Parser requires a callable instance factory")
        super().__init__(strict=strict)
        self.factory = factory

    @classmethod
    def for_instance(cls, instance: V, strict: bool = False) -> "Parser[V]":
        """Parser that fills the same caller-supplied instance on every parse."""
        return cls(lambda: instance, strict=strict)

    def parse(self, root: Any, instance: Optional[V] = None) -> V:
        """Apply every converter to `root` and return the populated instance."""
        if instance is None:
            instance = self.factory()
        self.apply(root, instance)
        return instance

    def parse_html(self, html: str, base_url: str = "") -> V:
        return self._parse_tree(HTMLParser(html), base_url)

    def parse_document(self, data: Any, charset: str = DEFAULT_CHARSET, base_url: str = "") -> V:
        """
        Parse a raw document and extract a fresh result from it.

        Args:
            data: bytes, a binary file object, or an already decoded str
            charset: encoding used to decode bytes
            base_url: location used to resolve relative links

        Returns:
            Populated result instance
        """
        return self._parse_tree(HTMLParser(_decode(data, charset)), base_url)

    def _parse_tree(self, tree: HTMLParser, base_url: str) -> V:
        token = bind_base_url(base_url)
        try:
            return self.parse(tree)
        finally:
            reset_base_url(token)


def _decode(data: Any, charset: str) -> str:
    if hasattr(data, "read"):
        data = data.read()
    if isinstance(data, str):
        return data
    try:
        return bytes(data).decode(charset or DEFAULT_CHARSET, errors="replace")
    except LookupError:
        logger.warning("Unknown charset %r, decoding as %s", charset, DEFAULT_CHARSET)
        return bytes(data).decode(DEFAULT_CHARSET, errors="replace")


def build_parser(
    factory: Callable[[], V],
    configure: Callable[[Parser], Any],
    strict: bool = False,
) -> Parser[V]:
    """Create a Parser and hand it to `configure` for registration."""
    parser = Parser(factory, strict=strict)
    configure(parser)
    return parser


def lazy_parser(
    factory: Callable[[], V],
    configure: Callable[[Parser], Any],
    strict: bool = False,
) -> Callable[[], Parser[V]]:
    """Defer building a parser until first use. The result is built once.

    The parser is published before `configure` runs, so `configure` may
    call the getter itself to nest the parser inside its own converters.
    """
    lock = threading.RLock()
    built: List[Parser] = []

    def get() -> Parser[V]:
        with lock:
            if not built:
                parser = Parser(factory, strict=strict)
                built.append(parser)
                try:
                    configure(parser)
                except BaseException:
                    built.clear()
                    raise
            return built[0]

    return get


def extract(html: str, factory: Callable[[], V], configure: Callable[[Parser], Any], base_url: str = "") -> V:
    """Build a parser and run it once over `html`."""
    return build_parser(factory, configure).parse_html(html, base_url)
