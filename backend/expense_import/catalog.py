"""
Loading of the reference catalog from the expenses service.

The catalog (categories, people, payment methods, apps) is fetched once
before staging begins and is never modified by the import pipeline.
"""

import logging
from typing import Dict, Optional

import httpx

from .errors import CatalogError
from .models import ReferenceCatalog

logger = logging.getLogger(__name__)

# Catalog attribute -> expenses service collection path
CATALOG_ENDPOINTS: Dict[str, str] = {
    "categories": "categories",
    "people": "people",
    "payment_methods": "payment-methods",
    "apps": "expense-apps",
}


class CatalogClient:
    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client
        self.timeout = timeout

    async def _fetch(self, client: httpx.AsyncClient) -> ReferenceCatalog:
        lists = {}
        for kind, path in CATALOG_ENDPOINTS.items():
            url = f"{self.base_url}/{path}"
            try:
                response = await client.get(url)
                response.raise_for_status()
                lists[kind] = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise CatalogError(f"Failed to load {kind} from {url}: {exc}") from exc

        try:
            catalog = ReferenceCatalog.model_validate(lists)
        except ValueError as exc:
            raise CatalogError(f"Malformed catalog entries: {exc}") from exc
        logger.info(
            "Loaded catalog: %d categories, %d people, %d payment methods, %d apps",
            len(catalog.categories),
            len(catalog.people),
            len(catalog.payment_methods),
            len(catalog.apps),
        )
        return catalog

    async def load(self) -> ReferenceCatalog:
        if self.client is not None:
            return await self._fetch(self.client)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._fetch(client)
