# Data models for the expense import pipeline
from datetime import date
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ROLES = (
    "date",
    "amount",
    "breakdown",
    "category",
    "payment_method",
    "notes",
    "paid_by",
    "app",
)

# Value a caller sends to explicitly clear a role
NONE_SENTINEL = "none"


def _column_or_none(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    if not value.strip() or value.strip().lower() == NONE_SENTINEL:
        return None
    return value


class SourceTable(BaseModel):
    headers: List[str]
    rows: List[Dict[str, str]]


class FieldMapping(BaseModel):
    """Assignment of each logical role to a source column, or None when unset."""

    date: Optional[str] = None
    amount: Optional[str] = None
    breakdown: Optional[str] = None
    category: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    paid_by: Optional[str] = None
    app: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _clear_sentinel(cls, value):
        return _column_or_none(value)

    def assign(self, role: str, column: Optional[str]) -> None:
        if role not in ROLES:
            raise ValueError(f"Unknown mapping role: {role}")
        setattr(self, role, _column_or_none(column))

    def clear(self, role: str) -> None:
        self.assign(role, None)

    def missing_roles(self, use_common_date: bool = False) -> List[str]:
        """Roles that must be set before expansion may run."""
        missing = []
        if not use_common_date and not self.date:
            missing.append("date")
        if not self.amount and not self.breakdown:
            missing.append("amount")
        return missing


class CatalogEntry(BaseModel):
    id: int
    name: str


class ReferenceCatalog(BaseModel):
    categories: List[CatalogEntry] = []
    people: List[CatalogEntry] = []
    payment_methods: List[CatalogEntry] = []
    apps: List[CatalogEntry] = []

    def find_id(self, kind: str, name: Optional[str]) -> Optional[int]:
        """Case-insensitive exact lookup of ``name`` in one of the entry lists."""
        if not name or not name.strip():
            return None
        wanted = name.strip().lower()
        for entry in getattr(self, kind):
            if entry.name.strip().lower() == wanted:
                return entry.id
        return None

    def has_id(self, kind: str, entry_id: int) -> bool:
        return any(entry.id == entry_id for entry in getattr(self, kind))

    def app_name(self, app_id: Optional[int]) -> Optional[str]:
        for entry in self.apps:
            if entry.id == app_id:
                return entry.name
        return None


class StagedExpense(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    temp_id: str
    category_id: Optional[int] = None
    paid_by_person_id: Optional[int] = None
    payment_method_id: int
    expense_app_id: Optional[int] = None
    amount_original: float = Field(gt=0)
    currency_original: str = "INR"
    amount_converted: float = Field(gt=0)
    expense_date: str
    notes: str = ""

    @field_validator("expense_date", mode="before")
    @classmethod
    def _canonical_date(cls, value: Union[date, str]) -> str:
        if isinstance(value, date):
            return value.isoformat()
        return date.fromisoformat(str(value).strip()[:10]).isoformat()

    def to_payload(self) -> Dict:
        """Record shape expected by the persistence collaborator."""
        return self.model_dump(by_alias=True, exclude={"temp_id"})


class StagedExpenseUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    category_id: Optional[int] = None
    paid_by_person_id: Optional[int] = None
    payment_method_id: Optional[int] = None
    expense_app_id: Optional[int] = None
    amount_original: Optional[float] = None
    expense_date: Optional[str] = None
    notes: Optional[str] = None


class PreviewRequest(BaseModel):
    use_common_date: bool = False
    common_date: Optional[date] = None
