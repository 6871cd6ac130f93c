"""
Header heuristics for mapping source columns onto expense fields.

The mapper looks only at column names, never at cell contents. Rules are
keyword matches on the lower-cased, trimmed header and are evaluated for
every header in file order, so a later header overwrites an earlier match
for the same role.
"""

import logging
from typing import List

from .models import FieldMapping

logger = logging.getLogger(__name__)

AMOUNT_TOKENS = ["amount", "price", "cost"]
PAYMENT_METHOD_TOKENS = ["method", "paid with"]
NOTES_TOKENS = ["note", "desc"]
PAID_BY_TOKENS = ["paid by", "spender"]


def _contains_any(header: str, tokens: List[str]) -> bool:
    return any(token in header for token in tokens)


def infer_mapping(headers: List[str]) -> FieldMapping:
    """
    Propose a best-effort role assignment for the given headers.

    Args:
        headers: Column names in file order

    Returns:
        FieldMapping holding the original header names; roles nothing
        matched stay unset
    """
    mapping = FieldMapping()

    for header in headers:
        if not header:
            continue
        low = header.strip().lower()

        if low == "breakdown":
            mapping.breakdown = header
        if low == "date":
            mapping.date = header
        if low == "total" or _contains_any(low, AMOUNT_TOKENS):
            if low != "breakdown":
                mapping.amount = header
        if low == "category" or "type" in low:
            mapping.category = header
        if _contains_any(low, PAYMENT_METHOD_TOKENS):
            mapping.payment_method = header
        if _contains_any(low, NOTES_TOKENS):
            mapping.notes = header
        if low == "person" or _contains_any(low, PAID_BY_TOKENS):
            mapping.paid_by = header
        if low == "app" or "source" in low:
            mapping.app = header

    logger.debug("Inferred mapping %s from headers %s", mapping.model_dump(), headers)
    return mapping
