"""
Declarative extraction of structured values from HTML with CSS selectors.
"""

from .errors import ConfigurationError, EmptySelectorError, MissingFactoryError, SelextractError
from .coerce import (
    EPOCH,
    absolute_url,
    attribute,
    node_text,
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
    merge,
)
from .parser import NestedParser, Parser, build_parser, extract, lazy_parser
from .adapter import ParserRegistry, ResponseAdapter, default_registry, response_parser
from .models import ExtractionResult, FieldRule, SelectorMap
from .config import FetchConfig
from .core import PageExtractor

__version__ = "0.3.0"

__all__ = [
    "SelextractError",
    "ConfigurationError",
    "EmptySelectorError",
    "MissingFactoryError",
    "EPOCH",
    "absolute_url",
    "attribute",
    "node_text",
    "to_date",
    "to_double",
    "to_float",
    "to_int",
    "to_long",
    "to_str",
    "CollectionConverter",
    "Converter",
    "MapConverter",
    "NestedParserConverter",
    "SelectorConverter",
    "WholeSelectionConverter",
    "merge",
    "NestedParser",
    "Parser",
    "build_parser",
    "extract",
    "lazy_parser",
    "ParserRegistry",
    "ResponseAdapter",
    "default_registry",
    "response_parser",
    "ExtractionResult",
    "FieldRule",
    "SelectorMap",
    "FetchConfig",
    "PageExtractor",
]
