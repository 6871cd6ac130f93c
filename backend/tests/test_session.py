"""Tests for the import session state machine."""

import asyncio
from datetime import date

import pytest

from expense_import.committer import BatchCommitter
from expense_import.errors import (
    CommitError,
    MappingIncomplete,
    NoFileLoaded,
    ParseError,
    SessionBusy,
)
from expense_import.session import STEP_MAPPING, STEP_REVIEW, STEP_UPLOAD


def test_new_session_is_empty(session):
    assert session.step == STEP_UPLOAD
    assert session.table is None
    assert session.staging.list() == []
    assert not session.can_expand()


def test_load_file_infers_mapping(session, sample_csv_content):
    table = session.load_file(sample_csv_content.encode())

    assert session.step == STEP_MAPPING
    assert len(table.rows) == 3
    assert session.mapping.date == "Date"
    assert session.mapping.amount == "Amount"
    assert session.mapping.notes == "Description"
    assert session.mapping.payment_method == "Payment Method"
    assert session.can_expand()


def test_failed_upload_keeps_previous_state(session, sample_csv_content):
    session.load_file(sample_csv_content)

    with pytest.raises(ParseError):
        session.load_file("Date,Amount\n")
    assert session.step == STEP_MAPPING
    assert len(session.table.rows) == 3


def test_expand_without_file(session):
    with pytest.raises(NoFileLoaded):
        session.expand()
    with pytest.raises(NoFileLoaded):
        session.set_mapping("amount", "Amount")


def test_expand_requires_date_or_common_date(session):
    session.load_file("Total,Category\n10,Food\n")

    with pytest.raises(MappingIncomplete) as exc_info:
        session.expand()
    assert exc_info.value.missing == ["date"]

    session.use_common_date(date(2024, 6, 1))
    records = session.expand()
    assert records[0].expense_date == "2024-06-01"


def test_expand_requires_amount_or_breakdown(session, sample_csv_content):
    session.load_file(sample_csv_content)
    session.set_mapping("amount", "none")

    assert session.missing_roles() == ["amount"]
    with pytest.raises(MappingIncomplete):
        session.expand()

    session.set_mapping("breakdown", "Amount")
    assert session.can_expand()


def test_set_mapping_rejects_unknown_column(session, sample_csv_content):
    session.load_file(sample_csv_content)

    with pytest.raises(ValueError):
        session.set_mapping("notes", "Memo")
    with pytest.raises(ValueError):
        session.update_mapping({"currency": "Amount"})


def test_expand_stages_records(session, sample_csv_content):
    session.load_file(sample_csv_content)
    records = session.expand()

    assert session.step == STEP_REVIEW
    assert [r.temp_id for r in records] == ["row-0", "row-1"]
    assert [r.payment_method_id for r in records] == [2, 1]
    assert [r.category_id for r in records] == [3, 4]
    assert session.skipped_rows == 1
    assert session.staging.total() == pytest.approx(80.0)


def test_update_record_checks_catalog_references(session, sample_csv_content):
    session.load_file(sample_csv_content)
    session.expand()

    for changes in (
        {"payment_method_id": 999},
        {"payment_method_id": None},
        {"category_id": 999},
        {"paid_by_person_id": 3},
        {"expense_app_id": 1},
    ):
        with pytest.raises(ValueError):
            session.update_record("row-0", changes)
    assert session.staging.get("row-0").payment_method_id == 2

    record = session.update_record(
        "row-0", {"payment_method_id": 1, "category_id": None, "expense_app_id": 6}
    )
    assert record.payment_method_id == 1
    assert record.category_id is None
    assert record.expense_app_id == 6


def test_commit_success_resets_session(session, sink, catalog, breakdown_csv_content):
    session.load_file(breakdown_csv_content)
    session.expand()
    session.update_record("row-0-part-1", {"amount_original": 60})

    created = asyncio.run(session.commit(BatchCommitter(sink, catalog)))

    assert len(created) == 3
    batch = sink.batches[0]
    assert [item["amountOriginal"] for item in batch] == [100.0, 60.0, 20.0]
    assert [item["amountConverted"] for item in batch] == [100.0, 60.0, 20.0]
    assert [item["notes"] for item in batch] == ["Swiggy", "Swiggy", "Cab home"]
    assert session.step == STEP_UPLOAD
    assert session.table is None
    assert session.staging.list() == []
    assert session.mapping.amount is None


def test_commit_failure_keeps_staged_records(session, sink, catalog, sample_csv_content):
    session.load_file(sample_csv_content)
    staged = session.expand()
    sink.fail = True

    with pytest.raises(CommitError):
        asyncio.run(session.commit(BatchCommitter(sink, catalog)))

    assert session.staging.list() == staged
    assert session.step == STEP_REVIEW
    assert session.commit_in_flight is False

    sink.fail = False
    asyncio.run(session.commit(BatchCommitter(sink, catalog)))
    assert len(sink.batches) == 1


def test_edits_blocked_during_commit(session, catalog, sample_csv_content):
    session.load_file(sample_csv_content)
    session.expand()
    attempts = []

    class InspectingSink:
        async def create_batch(self, records):
            for action in (
                lambda: session.update_record("row-0", {"notes": "late edit"}),
                lambda: session.remove_record("row-0"),
                session.expand,
            ):
                try:
                    action()
                except SessionBusy:
                    attempts.append("blocked")
            return records

    asyncio.run(session.commit(BatchCommitter(InspectingSink(), catalog)))

    assert attempts == ["blocked", "blocked", "blocked"]


def test_reset_during_commit_discards_result(session, catalog, sample_csv_content):
    session.load_file(sample_csv_content)
    session.expand()

    class ResettingSink:
        async def create_batch(self, records):
            session.reset()
            session.load_file("Date,Total\n2024-01-01,5\n")
            return records

    created = asyncio.run(session.commit(BatchCommitter(ResettingSink(), catalog)))

    assert len(created) == 2
    # The newer upload survives the late commit result
    assert session.step == STEP_MAPPING
    assert session.table.headers == ["Date", "Total"]


def test_reset(session, sample_csv_content):
    session.load_file(sample_csv_content)
    session.use_common_date(date(2024, 1, 1))
    session.expand()
    generation = session.generation

    session.reset()

    assert session.step == STEP_UPLOAD
    assert session.common_date is None
    assert len(session.staging) == 0
    assert session.skipped_rows == 0
    assert session.generation > generation
