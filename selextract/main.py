import asyncio
import json
from pathlib import Path
from typing import Optional
import httpx
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from .config import FetchConfig, setup_logging
from .core import PageExtractor
from .errors import ConfigurationError
from .models import ExtractionResult, SelectorMap


app = typer.Typer(help="Extract structured records from HTML with CSS selectors")
console = Console()

EXAMPLE_SELECTORS = {
    "item_selector": "li.person",
    "pagination_selector": "a.next",
    "fields": {
        "name": ".name",
        "age": {"selector": ".age", "kind": "int"},
        "profile_url": {"selector": "a", "attr": "href", "absolute": True}
    }
}


@app.command()
def run(
    url: str = typer.Argument(..., help="URL of the first page to extract from"),
    selectors_file: Optional[str] = typer.Option(
        None,
        "--selectors",
        "-s",
        help="Path to JSON file with the selector map"
    ),
    selectors_json: Optional[str] = typer.Option(
        None,
        "--selectors-json",
        "-j",
        help="Inline JSON selector map"
    ),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output JSON file path"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", "-p", help="Maximum pages to follow"),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", help="User-Agent header to send"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
):
    """Fetch a page, follow pagination and extract records."""
    setup_logging(verbose)

    try:
        selector_map = _load_selector_map(selectors_file, selectors_json)
        config = _load_config(max_pages=max_pages, user_agent=user_agent)
    except ConfigurationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    extractor = PageExtractor(selector_map, config)

    try:
        result = asyncio.run(extractor.extract(url))
    except httpx.HTTPError as e:
        console.print(f"[red]Error fetching {url}: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    _report(result, output)


@app.command()
def parse(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="HTML file to parse"),
    selectors_file: Optional[str] = typer.Option(None, "--selectors", "-s"),
    selectors_json: Optional[str] = typer.Option(None, "--selectors-json", "-j"),
    base_url: str = typer.Option("", "--base-url", help="URL used to resolve relative links"),
    charset: Optional[str] = typer.Option(None, "--charset", help="Encoding of the file"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output JSON file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
):
    """Extract records from a local HTML file."""
    setup_logging(verbose)

    try:
        selector_map = _load_selector_map(selectors_file, selectors_json)
        config = _load_config(charset=charset)
    except ConfigurationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    extractor = PageExtractor(selector_map, config)
    result = extractor.extract_document(path.read_bytes(), base_url, charset)

    _report(result, output)


def _load_selector_map(selectors_file: Optional[str], selectors_json: Optional[str]) -> SelectorMap:
    """Load a selector map from file or inline JSON."""
    try:
        if selectors_file:
            with open(selectors_file) as f:
                raw = json.load(f)
        elif selectors_json:
            raw = json.loads(selectors_json)
        else:
            console.print("\nExample selector map:")
            console.print(JSON(json.dumps(EXAMPLE_SELECTORS, indent=2)))
            raise ConfigurationError("Must provide a selector map via --selectors or --selectors-json")
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read selector map: {e}") from e

    try:
        return SelectorMap.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid selector map: {e}") from e


def _load_config(**overrides) -> FetchConfig:
    try:
        return FetchConfig.from_env(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _report(result: ExtractionResult, output: Optional[str]) -> None:
    console.print(f"\n[green]Extracted {result.total_count} records from {result.pages} page(s)[/green]")

    if output:
        with open(output, 'w') as f:
            json.dump(result.as_dicts, f, indent=2, default=str)
        console.print(f"[green]Saved to {output}[/green]")
    else:
        console.print("\n[cyan]Sample records:[/cyan]")
        for i, record in enumerate(result.records[:3], 1):
            console.print(f"\n{i}.")
            console.print(JSON(json.dumps(record, indent=2, default=str)))

        if result.total_count > 3:
            console.print(f"\n... and {result.total_count - 3} more records")


if __name__ == "__main__":
    app()
