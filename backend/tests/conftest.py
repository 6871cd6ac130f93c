"""Pytest configuration and fixtures for testing the Expense Import API."""
import pytest
from fastapi.testclient import TestClient

from expense_import.errors import CommitError
from expense_import.main import app, get_sink
from expense_import.models import ReferenceCatalog
from expense_import.session import ImportSession


class FakeSink:
    """In-memory stand-in for the expenses service batch endpoint."""

    def __init__(self):
        self.batches = []
        self.fail = False

    async def create_batch(self, records):
        if self.fail:
            raise CommitError("Failed to upload batch: 500", status_code=500)
        self.batches.append(records)
        return [{"id": idx + 1, **record} for idx, record in enumerate(records)]


@pytest.fixture
def catalog():
    """Reference catalog shared by the expansion and commit tests."""
    return ReferenceCatalog(
        categories=[{"id": 3, "name": "Food"}, {"id": 4, "name": "Travel"}],
        people=[{"id": 7, "name": "Asha"}, {"id": 8, "name": "Ravi"}],
        payment_methods=[{"id": 1, "name": "Cash"}, {"id": 2, "name": "Card"}],
        apps=[{"id": 5, "name": "Swiggy"}, {"id": 6, "name": "Uber"}],
    )


@pytest.fixture
def sink():
    return FakeSink()


@pytest.fixture
def session(catalog):
    return ImportSession(catalog=catalog)


@pytest.fixture
def client(session, sink):
    """Create a test client bound to a fresh import session."""
    app.state.session = session
    app.dependency_overrides[get_sink] = lambda: sink
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def sample_csv_content():
    """Sample CSV content for testing."""
    return """Date,Description,Amount,Category,Payment Method
2024-01-01,Grocery Store,50.00,Food,Card
2024-01-02,Train ticket,30.00,Travel,Cash
2024-01-03,Refund pending,n/a,Food,Cash"""


@pytest.fixture
def breakdown_csv_content():
    return """Date,Breakdown,Total,Category,Paid By,App,Notes
05-03-2024,100+50.5+abc,150.5,Food,Asha,Swiggy,
2024-03-06,,20,Travel,Ravi,Uber,Cab home"""


@pytest.fixture
def sample_csv_file(sample_csv_content, tmp_path):
    """Create a temporary CSV file for testing."""
    csv_file = tmp_path / "test.csv"
    csv_file.write_text(sample_csv_content)
    return csv_file
