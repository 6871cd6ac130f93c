"""
In-memory staging area for records awaiting review and commit.

Records are addressed only by temp_id. Reads hand out copies so callers can
never mutate a staged record behind the store's back.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from .models import StagedExpense

logger = logging.getLogger(__name__)


class StagingStore:
    """Ordered map of temp_id to StagedExpense."""

    def __init__(self, records: Optional[Iterable[StagedExpense]] = None):
        self._records: "OrderedDict[str, StagedExpense]" = OrderedDict()
        if records is not None:
            self.load(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, temp_id: str) -> bool:
        return temp_id in self._records

    def load(self, records: Iterable[StagedExpense]) -> None:
        """Replace the store contents, keeping the given order."""
        self._records = OrderedDict(
            (record.temp_id, record.model_copy()) for record in records
        )

    def list(self) -> List[StagedExpense]:
        return [record.model_copy() for record in self._records.values()]

    def get(self, temp_id: str) -> Optional[StagedExpense]:
        record = self._records.get(temp_id)
        return record.model_copy() if record is not None else None

    def update(
        self, temp_id: str, changes: Dict[str, Any]
    ) -> Optional[StagedExpense]:
        """
        Merge partial field changes into one record.

        Args:
            temp_id: Record to edit; an unknown id is a silent no-op
            changes: Field name to new value (snake_case names)

        Returns:
            The updated record, or None if temp_id is not staged

        Raises:
            ValueError: If the merged record is invalid (e.g. non-positive
                amount or unreadable date)
        """
        current = self._records.get(temp_id)
        if current is None:
            logger.debug("Ignoring update for unknown record %s", temp_id)
            return None

        # The converted amount is derived, never edited directly
        changes = {
            k: v
            for k, v in changes.items()
            if k not in ("temp_id", "amount_converted")
        }
        if changes.get("amount_original") is not None:
            # No conversion step exists yet, the converted amount mirrors it
            changes["amount_converted"] = changes["amount_original"]
        elif "amount_original" in changes:
            raise ValueError("amount_original cannot be cleared")

        merged = StagedExpense.model_validate(
            {**current.model_dump(), **changes}
        )
        self._records[temp_id] = merged
        return merged.model_copy()

    def remove(self, temp_id: str) -> bool:
        return self._records.pop(temp_id, None) is not None

    def clear(self) -> None:
        self._records.clear()

    def total(self) -> float:
        return sum(record.amount_converted for record in self._records.values())
