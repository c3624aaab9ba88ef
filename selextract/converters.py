"""
Converters: one CSS selector bound to one action on the result instance.

The set of converters is closed. Every variant exposes
``convert(root, instance)``; the Parser calls it once per pass.
"""

import logging
from collections.abc import MutableMapping, MutableSequence, MutableSet
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


def _warn_empty(kind: str) -> None:
    logger.warning("%s registered with an empty selector, no nodes selected", kind)


def _select_all(root: Any, css: str) -> List[Any]:
    if root is None:
        return []
    return list(root.css(css))


@dataclass(frozen=True)
class SelectorConverter:
    """Hands the first match (or None) or every match to `action`."""

    css: str
    action: Callable[[Any, Any], None]
    first_only: bool = True

    def convert(self, root: Any, instance: Any) -> None:
        if not self.css:
            _warn_empty("SelectorConverter")
            if self.first_only:
                self.action(None, instance)
            return

        if self.first_only:
            node = root.css_first(self.css) if root is not None else None
            self.action(node, instance)
        else:
            for node in _select_all(root, self.css):
                self.action(node, instance)


@dataclass(frozen=True)
class WholeSelectionConverter:
    """Hands the full list of matches to `action` in one call."""

    css: str
    action: Callable[[List[Any], Any], None]

    def convert(self, root: Any, instance: Any) -> None:
        if not self.css:
            _warn_empty("WholeSelectionConverter")
            self.action([], instance)
            return
        self.action(_select_all(root, self.css), instance)


@dataclass(frozen=True)
class CollectionConverter:
    """Maps every match through `transform` and hands the list to `action`."""

    css: str
    transform: Callable[[Any], Any]
    action: Callable[[List[Any], Any], None]

    def convert(self, root: Any, instance: Any) -> None:
        if not self.css:
            _warn_empty("CollectionConverter")
            self.action([], instance)
            return
        values = [self.transform(node) for node in _select_all(root, self.css)]
        self.action(values, instance)


@dataclass(frozen=True)
class MapConverter:
    """Builds a dict from every match and hands it to `action`.

    Later matches overwrite earlier ones on duplicate keys.
    """

    css: str
    key: Callable[[Any], Any]
    value: Callable[[Any], Any]
    action: Callable[[Dict[Any, Any], Any], None]

    def convert(self, root: Any, instance: Any) -> None:
        if not self.css:
            _warn_empty("MapConverter")
            self.action({}, instance)
            return
        mapping = {self.key(node): self.value(node) for node in _select_all(root, self.css)}
        self.action(mapping, instance)


@dataclass(frozen=True)
class NestedParserConverter:
    """Runs another parser on the matched node(s).

    Without an action the nested parser writes straight into `instance`.
    With one, each match is parsed into a fresh result from the nested
    parser's factory and that result is handed to `action`.
    """

    css: str
    parser: Any
    action: Optional[Callable[[Any, Any], None]] = None
    first_only: bool = True

    def convert(self, root: Any, instance: Any) -> None:
        if not self.css:
            _warn_empty("NestedParserConverter")
            return

        if self.first_only:
            node = root.css_first(self.css) if root is not None else None
            nodes = [node] if node is not None else []
        else:
            nodes = _select_all(root, self.css)

        for node in nodes:
            if self.action is None:
                self.parser.apply(node, instance)
            else:
                self.action(self.parser.parse(node), instance)


Converter = Union[
    SelectorConverter,
    WholeSelectionConverter,
    CollectionConverter,
    MapConverter,
    NestedParserConverter,
]


def merge(container: Any, values: Any) -> None:
    """Accumulate `values` into a caller-owned container in place."""
    if isinstance(container, MutableMapping):
        container.update(values)
    elif isinstance(container, MutableSet):
        container |= set(values)
    elif isinstance(container, MutableSequence):
        container.extend(values)
    else:
        raise TypeError(f"Cannot merge into {type(container).__name__}")


def lookup(instance: Any, name: str) -> Any:
    if isinstance(instance, MutableMapping):
        return instance.get(name)
    return getattr(instance, name, None)


def assign(instance: Any, name: str, value: Any) -> None:
    if isinstance(instance, MutableMapping):
        instance[name] = value
    else:
        setattr(instance, name, value)


def field_setter(name: str) -> Callable[[Any, Any], None]:
    """Callback writing the value to field `name` of the instance."""

    def setter(value: Any, instance: Any) -> None:
        assign(instance, name, value)

    return setter


def field_merger(name: str) -> Callable[[Any, Any], None]:
    """Callback accumulating the value into the container at field `name`."""

    def merger(values: Any, instance: Any) -> None:
        container = lookup(instance, name)
        if container is None:
            assign(instance, name, dict(values) if isinstance(values, dict) else list(values))
        else:
            merge(container, values)

    return merger
