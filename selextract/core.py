import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Set
import httpx
from .adapter import ResponseAdapter
from .config import FetchConfig
from .models import ExtractionResult, SelectorMap

logger = logging.getLogger(__name__)


class PageExtractor:
    """Fetches pages, follows pagination and extracts records with a selector map."""

    def __init__(
        self,
        selector_map: SelectorMap,
        config: Optional[FetchConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        clean: bool = True
    ):
        self.selector_map = selector_map
        self.config = config or FetchConfig.from_env()
        self.parser = selector_map.page_parser()
        self.adapter = ResponseAdapter(default_charset=self.config.charset)
        self.client = client
        self.clean = clean

    async def extract(self, url: str) -> ExtractionResult:
        """Main extraction entrypoint."""
        if self.client is not None:
            return await self._extract_pages(self.client, url)

        async with httpx.AsyncClient(
            timeout=self.config.timeout,
            follow_redirects=True,
            headers=self.config.request_headers()
        ) as client:
            return await self._extract_pages(client, url)

    def extract_document(self, data: Any, url: str = "", charset: Optional[str] = None) -> ExtractionResult:
        """Extract records from an already loaded document, without pagination."""
        page = self.parser.parse_document(data, charset or self.config.charset, url)
        records = self._clean_records(page["records"])
        return ExtractionResult(
            url=url,
            records=records,
            total_count=len(records),
            pages=1,
            selector_map=self.selector_map
        )

    async def _extract_pages(self, client: httpx.AsyncClient, url: str) -> ExtractionResult:
        all_records: List[Dict[str, Any]] = []
        visited: Set[str] = set()
        next_url: Optional[str] = url
        page_count = 0

        while next_url and page_count < self.config.max_pages:
            if page_count:
                await asyncio.sleep(self.config.delay)

            try:
                page = await self._fetch_and_parse(client, next_url)
            except httpx.HTTPError as e:
                if page_count == 0:
                    raise
                logger.warning("Stopping pagination at %s: %s", next_url, e)
                break

            visited.add(next_url)
            page_count += 1
            records = self._clean_records(page["records"])
            all_records.extend(records)
            logger.info("Page %d: %d records from %s", page_count, len(records), next_url)

            candidate = page["next_page"]
            next_url = candidate if candidate and candidate not in visited else None

        logger.info("Extraction complete: %d records from %d pages", len(all_records), page_count)

        return ExtractionResult(
            url=url,
            records=all_records,
            total_count=len(all_records),
            pages=page_count,
            selector_map=self.selector_map
        )

    async def _fetch_and_parse(self, client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
        """Fetch a page and parse it into records plus the next page URL."""
        response = await client.get(url)
        response.raise_for_status()
        return self.adapter.parse_response(response, self.parser)

    def _clean_records(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Remove empty records and deduplicate."""
        if not self.clean:
            return records

        seen = set()
        unique = []
        for rec in records:
            if not any(rec.values()):
                continue
            key = json.dumps(rec, sort_keys=True, default=str)
            if key not in seen:
                seen.add(key)
                unique.append(rec)

        if len(records) != len(unique):
            logger.debug("Cleaned: %d -> %d records", len(records), len(unique))

        return unique
