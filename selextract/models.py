from typing import Any, Callable, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from .coerce import absolute_url, attribute, node_text
from .parser import Parser


FieldKind = Literal["text", "int", "long", "float", "double", "date", "list", "map"]


class FieldRule(BaseModel):
    """How one field of a record is extracted."""
    selector: str
    kind: FieldKind = "text"
    attr: Optional[str] = Field(None, description="Read this attribute instead of the text")
    absolute: bool = Field(False, description="Resolve the attribute (href by default) against the page URL")
    key_attr: Optional[str] = Field(None, description="Attribute used as key for 'map' fields")
    date_format: str = "%Y-%m-%d"

    @field_validator('selector')
    @classmethod
    def validate_selector(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Selector must not be empty")
        return v

    def extractor(self) -> Callable[[Any], str]:
        attr = self.attr or ("href" if self.absolute else None)
        if attr:
            return absolute_url(attr) if self.absolute else attribute(attr)
        return node_text

    def register(self, parser: Parser, name: str) -> None:
        """Add the converter for this rule to `parser`, writing to key `name`."""
        read = self.extractor()
        if self.kind == "list":
            parser.collection(self.selector, name, read)
        elif self.kind == "map":
            key = attribute(self.key_attr) if self.key_attr else node_text
            parser.map(self.selector, name, key=key, value=read)
        elif self.kind == "date":
            parser.date(self.selector, name, self.date_format, extract=read)
        else:
            getattr(parser, self.kind)(self.selector, name, extract=read)


_next_page_url = absolute_url("href")


def _set_next_page(nodes, result):
    # Skips candidates without an href, such as disabled "next" links.
    for node in nodes:
        if node.attributes.get("href"):
            result["next_page"] = _next_page_url(node)
            return


class SelectorMap(BaseModel):
    """Mapping of field names to selector rules."""
    fields: Dict[str, FieldRule]
    item_selector: Optional[str] = None
    pagination_selector: Optional[str] = None

    @field_validator('fields', mode='before')
    @classmethod
    def validate_fields(cls, v):
        if not v:
            raise ValueError("At least one field must be specified")
        if not isinstance(v, dict):
            return v
        return {
            name: {"selector": rule} if isinstance(rule, str) else rule
            for name, rule in v.items()
        }

    def record_parser(self) -> Parser:
        """Parser producing one dict per record."""
        parser = Parser(dict)
        for name, rule in self.fields.items():
            rule.register(parser, name)
        return parser

    def page_parser(self) -> Parser:
        """Parser producing {"records": [...], "next_page": url} for a page."""
        records = self.record_parser()
        page = Parser(lambda: {"records": [], "next_page": ""})

        if self.item_selector:
            page.collection(self.item_selector, "records", records)
        else:
            page.parser("html", records, lambda record, result: result["records"].append(record))

        if self.pagination_selector:
            page.all_elements(self.pagination_selector, _set_next_page)

        return page


class ExtractionResult(BaseModel):
    """Complete result from an extraction run."""
    url: str
    records: List[Dict[str, Any]]
    total_count: int
    pages: int = 1
    selector_map: SelectorMap

    @property
    def as_dicts(self) -> List[Dict[str, Any]]:
        return [dict(r) for r in self.records]
