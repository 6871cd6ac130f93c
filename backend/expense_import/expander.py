"""
Row expansion: turns mapped source rows into staged expense records.

A row whose breakdown cell holds several '+'-separated amounts becomes one
record per amount; otherwise the primary amount column yields a single
record. Rows that produce no valid amount are skipped without error.
"""

import logging
import re
from datetime import date
from typing import Dict, List, Optional

from .dates import format_date, normalize_date
from .errors import CatalogError
from .models import FieldMapping, ReferenceCatalog, SourceTable, StagedExpense

logger = logging.getLogger(__name__)

BREAKDOWN_SEPARATOR = "+"
DEFAULT_CURRENCY = "INR"

_NON_NUMERIC = re.compile(r"[^0-9.]")
_LEADING_NUMBER = re.compile(r"\d+\.?\d*|\.\d+")


def parse_amount(raw: Optional[str]) -> Optional[float]:
    """
    Parse an amount cell, ignoring currency symbols, separators and signs.

    Only digits and '.' are kept; the longest leading number is used, so
    '12.50.3' reads as 12.5.

    Returns:
        Parsed positive amount or None if no valid amount was found
    """
    if not raw:
        return None
    cleaned = _NON_NUMERIC.sub("", str(raw).strip())
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return None
    amount = float(match.group(0))
    if amount <= 0:
        return None
    return amount


class RowExpander:
    """
    Expands source rows using a fixed mapping and reference catalog.

    The expander is initialized with the mapping and catalog for one pass so
    each row only has to look up its own cells.
    """

    def __init__(
        self,
        mapping: FieldMapping,
        catalog: ReferenceCatalog,
        currency: str = DEFAULT_CURRENCY,
    ):
        if not catalog.payment_methods:
            raise CatalogError(
                "Reference catalog has no payment methods to fall back on"
            )
        self.mapping = mapping
        self.catalog = catalog
        self.currency = currency
        self.default_payment_method_id = catalog.payment_methods[0].id
        self.skipped_rows = 0

    def _cell(self, row: Dict[str, str], column: Optional[str]) -> str:
        if not column:
            return ""
        return (row.get(column) or "").strip()

    def _base_fields(
        self, row: Dict[str, str], common_date: Optional[date]
    ) -> Dict:
        mapping = self.mapping
        payment_method_id = self.catalog.find_id(
            "payment_methods", self._cell(row, mapping.payment_method)
        )
        if payment_method_id is None:
            payment_method_id = self.default_payment_method_id
        if common_date is not None:
            expense_date = common_date
        else:
            expense_date = normalize_date(self._cell(row, mapping.date))

        return {
            "category_id": self.catalog.find_id(
                "categories", self._cell(row, mapping.category)
            ),
            "paid_by_person_id": self.catalog.find_id(
                "people", self._cell(row, mapping.paid_by)
            ),
            "payment_method_id": payment_method_id,
            "expense_app_id": self.catalog.find_id("apps", self._cell(row, mapping.app)),
            "currency_original": self.currency,
            "expense_date": format_date(expense_date),
            "notes": self._cell(row, mapping.notes),
        }

    def expand_row(
        self,
        row_index: int,
        row: Dict[str, str],
        common_date: Optional[date] = None,
    ) -> List[StagedExpense]:
        base = self._base_fields(row, common_date)
        records: List[StagedExpense] = []

        breakdown = self._cell(row, self.mapping.breakdown)
        if breakdown:
            for part_index, part in enumerate(breakdown.split(BREAKDOWN_SEPARATOR)):
                amount = parse_amount(part)
                if amount is None:
                    continue
                records.append(
                    StagedExpense(
                        temp_id=f"row-{row_index}-part-{part_index}",
                        amount_original=amount,
                        amount_converted=amount,
                        **base,
                    )
                )

        if not records and self.mapping.amount:
            amount = parse_amount(self._cell(row, self.mapping.amount))
            if amount is not None:
                records.append(
                    StagedExpense(
                        temp_id=f"row-{row_index}",
                        amount_original=amount,
                        amount_converted=amount,
                        **base,
                    )
                )

        if not records:
            logger.debug("Skipping row %d: no valid amount", row_index)
        return records

    def expand(
        self, table: SourceTable, common_date: Optional[date] = None
    ) -> List[StagedExpense]:
        """
        Expand every row of the table into staged records.

        Args:
            table: Parsed source file
            common_date: When given, used as the date of every record

        Returns:
            Staged records in source row order, breakdown parts left to right
        """
        staged: List[StagedExpense] = []
        self.skipped_rows = 0
        for row_index, row in enumerate(table.rows):
            records = self.expand_row(row_index, row, common_date)
            if not records:
                self.skipped_rows += 1
            staged.extend(records)

        logger.info(
            "Expanded %d source rows into %d staged records (%d skipped)",
            len(table.rows),
            len(staged),
            self.skipped_rows,
        )
        return staged
