"""
Import session: the state of one upload from file to committed batch.

All pipeline state (parsed table, mapping, common date, staged records) lives
on one ImportSession object instead of module globals, so several sessions
can coexist and each stage can be exercised on its own.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Union

from .committer import BatchCommitter
from .errors import MappingIncomplete, NoFileLoaded, SessionBusy
from .expander import DEFAULT_CURRENCY, RowExpander
from .models import (
    NONE_SENTINEL,
    ROLES,
    FieldMapping,
    ReferenceCatalog,
    SourceTable,
    StagedExpense,
)
from .schema_mapper import infer_mapping
from .staging import StagingStore
from .tabular import parse_table

logger = logging.getLogger(__name__)

STEP_UPLOAD = "upload"
STEP_MAPPING = "mapping"
STEP_REVIEW = "review"

# Staged record field -> catalog list its id must come from
REFERENCE_FIELDS = {
    "category_id": "categories",
    "paid_by_person_id": "people",
    "payment_method_id": "payment_methods",
    "expense_app_id": "apps",
}


class ImportSession:
    def __init__(
        self,
        catalog: Optional[ReferenceCatalog] = None,
        currency: str = DEFAULT_CURRENCY,
    ):
        self.catalog = catalog or ReferenceCatalog()
        self.currency = currency
        self.staging = StagingStore()
        self.commit_in_flight = False
        # Bumped on every reset so a late commit result can tell it is stale
        self.generation = 0
        self._clear_state()

    def _clear_state(self) -> None:
        self.step = STEP_UPLOAD
        self.table: Optional[SourceTable] = None
        self.mapping = FieldMapping()
        self.common_date: Optional[date] = None
        self.skipped_rows = 0
        self.staging.clear()

    def reset(self) -> None:
        """Discard the file, mapping and staged records."""
        self._clear_state()
        self.generation += 1
        logger.info("Import session reset")

    # Upload and mapping

    def load_file(self, data: Union[bytes, str]) -> SourceTable:
        """
        Parse an uploaded file and propose a column mapping.

        Raises:
            ParseError: The previous session state is kept untouched
        """
        table = parse_table(data)
        self.reset()
        self.table = table
        self.mapping = infer_mapping(table.headers)
        self.step = STEP_MAPPING
        logger.info(
            "Loaded file with %d rows, columns %s", len(table.rows), table.headers
        )
        return table

    def set_mapping(self, role: str, column: Optional[str]) -> FieldMapping:
        if self.table is None:
            raise NoFileLoaded("No file uploaded")
        if column is not None and column.strip().lower() not in ("", NONE_SENTINEL):
            if column not in self.table.headers:
                raise ValueError(f"Unknown column: {column}")
        self.mapping.assign(role, column)
        return self.mapping

    def update_mapping(self, changes: Dict[str, Optional[str]]) -> FieldMapping:
        for role, column in changes.items():
            if role not in ROLES:
                raise ValueError(f"Unknown mapping role: {role}")
            self.set_mapping(role, column)
        return self.mapping

    def use_common_date(self, value: Optional[date]) -> None:
        """Apply one date to every record, or None to read the date column."""
        self.common_date = value

    def missing_roles(self) -> List[str]:
        return self.mapping.missing_roles(use_common_date=self.common_date is not None)

    def can_expand(self) -> bool:
        return self.table is not None and not self.missing_roles()

    # Expansion and review

    def expand(self) -> List[StagedExpense]:
        """
        Run one expansion pass and replace the staged records with its output.

        Raises:
            NoFileLoaded: If no file has been loaded
            MappingIncomplete: If a required role is unset
            CatalogError: If the catalog has no payment methods
        """
        if self.table is None:
            raise NoFileLoaded("No file uploaded")
        missing = self.missing_roles()
        if missing:
            raise MappingIncomplete(missing)
        self._ensure_editable()

        expander = RowExpander(self.mapping, self.catalog, currency=self.currency)
        records = expander.expand(self.table, common_date=self.common_date)
        self.staging.load(records)
        self.skipped_rows = expander.skipped_rows
        self.step = STEP_REVIEW
        return self.staging.list()

    def _ensure_editable(self) -> None:
        if self.commit_in_flight:
            raise SessionBusy("A commit is in progress, staged records are locked")

    def update_record(
        self, temp_id: str, changes: Dict[str, Any]
    ) -> Optional[StagedExpense]:
        """
        Edit one staged record.

        Raises:
            SessionBusy: While a commit is in flight
            ValueError: If a reference id is not in the catalog, or the
                edited record is invalid
        """
        self._ensure_editable()
        if temp_id in self.staging:
            self._check_references(changes)
        return self.staging.update(temp_id, changes)

    def _check_references(self, changes: Dict[str, Any]) -> None:
        for field, kind in REFERENCE_FIELDS.items():
            if field not in changes:
                continue
            value = changes[field]
            if value is None:
                if field == "payment_method_id":
                    raise ValueError("payment_method_id cannot be cleared")
                continue
            if not self.catalog.has_id(kind, value):
                raise ValueError(f"Unknown {field}: {value}")

    def remove_record(self, temp_id: str) -> bool:
        self._ensure_editable()
        return self.staging.remove(temp_id)

    # Commit

    async def commit(self, committer: BatchCommitter) -> List[Dict[str, Any]]:
        """
        Commit the staged records as one batch.

        On success the whole session is reset, unless it was already reset
        while the request was in flight. On CommitError the staged records
        stay as they were so the caller can retry.
        """
        self._ensure_editable()
        snapshot = self.staging.list()
        generation = self.generation
        self.commit_in_flight = True
        try:
            created = await committer.commit(snapshot)
        finally:
            self.commit_in_flight = False

        if self.generation != generation:
            logger.info("Session was reset during commit, discarding result")
            return created
        if snapshot:
            self.reset()
        return created
