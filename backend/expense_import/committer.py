"""
Batch commit of staged records to the expenses service.

The whole staged set travels in one request and the service applies it as a
unit, so there is no partial-success bookkeeping here: a failure leaves the
caller's staged records untouched and safe to resubmit.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .errors import CommitError
from .models import ReferenceCatalog, StagedExpense

logger = logging.getLogger(__name__)


class ExpenseSink(Protocol):
    async def create_batch(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...


class HttpExpenseSink:
    """Posts expense batches to ``<base_url>/expenses/batch``."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.url = base_url.rstrip("/") + "/expenses/batch"
        self.client = client
        self.timeout = timeout

    async def _post(self, client: httpx.AsyncClient, records: List[Dict[str, Any]]):
        try:
            response = await client.post(self.url, json=records)
        except httpx.HTTPError as exc:
            raise CommitError(f"Failed to reach expenses service: {exc}") from exc

        if response.is_error:
            raise CommitError(
                f"Failed to upload batch: {response.status_code} {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise CommitError("Expenses service returned invalid JSON") from exc

    async def create_batch(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if self.client is not None:
            return await self._post(self.client, records)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._post(client, records)


def finalize_records(
    records: List[StagedExpense], catalog: ReferenceCatalog
) -> List[Dict[str, Any]]:
    """
    Build the request payload for a batch.

    A record with blank notes and a known app is named after that app.
    """
    payload = []
    for record in records:
        item = record.to_payload()
        if not item["notes"].strip() and record.expense_app_id is not None:
            app_name = catalog.app_name(record.expense_app_id)
            if app_name:
                item["notes"] = app_name
        payload.append(item)
    return payload


class BatchCommitter:
    def __init__(self, sink: ExpenseSink, catalog: ReferenceCatalog):
        self.sink = sink
        self.catalog = catalog

    async def commit(self, records: List[StagedExpense]) -> List[Dict[str, Any]]:
        """
        Submit all records as one creation request.

        Returns:
            The created records as returned by the expenses service; an
            empty list, without any request, when there is nothing to commit

        Raises:
            CommitError: If the request failed for any reason
        """
        if not records:
            logger.info("Nothing staged, skipping commit")
            return []

        payload = finalize_records(records, self.catalog)
        logger.info("Committing batch of %d expenses", len(payload))
        try:
            created = await self.sink.create_batch(payload)
        except CommitError:
            logger.warning("Batch commit of %d expenses failed", len(payload))
            raise
        except Exception as exc:
            logger.exception("Unexpected failure committing batch")
            raise CommitError(str(exc)) from exc

        logger.info("Committed %d expenses", len(payload))
        return created
