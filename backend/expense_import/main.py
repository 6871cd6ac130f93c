from datetime import date
from typing import Dict

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from .catalog import CatalogClient
from .committer import BatchCommitter, ExpenseSink, HttpExpenseSink
from .config import get_settings
from .errors import (
    CatalogError,
    CommitError,
    MappingIncomplete,
    ParseError,
    SessionBusy,
)
from .logging_setup import configure_logging
from .models import (
    FieldMapping,
    PreviewRequest,
    ReferenceCatalog,
    StagedExpenseUpdate,
)
from .session import ImportSession
from .tracing import get_tracer, initialize_tracing

settings = get_settings()
configure_logging(settings.log_level)
initialize_tracing()

app = FastAPI(title="Expense Import API")

# CORS middleware for the React frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.session = ImportSession(currency=settings.currency)

ALLOWED_EXTENSIONS = (".csv", ".txt", ".tsv")
PREVIEW_ROWS = 10


def get_session(request: Request) -> ImportSession:
    return request.app.state.session


def get_sink() -> ExpenseSink:
    return HttpExpenseSink(settings.api_base_url, timeout=settings.timeout)


def get_catalog_client() -> CatalogClient:
    return CatalogClient(settings.api_base_url, timeout=settings.timeout)


def mapping_response(session: ImportSession) -> Dict:
    return {
        "headers": session.table.headers if session.table else [],
        "mapping": session.mapping.model_dump(),
        "use_common_date": session.common_date is not None,
        "common_date": session.common_date,
        "missing_roles": session.missing_roles(),
    }


def staged_response(session: ImportSession) -> Dict:
    return {
        "records": [record.model_dump() for record in session.staging.list()],
        "count": len(session.staging),
        "total": round(session.staging.total(), 2),
        "skipped_rows": session.skipped_rows,
    }


@app.get("/")
def read_root():
    return {"message": "Expense Import API"}


@app.get("/session")
def get_session_state(session: ImportSession = Depends(get_session)):
    """Current step of the import session"""
    return {
        "step": session.step,
        "total_rows": len(session.table.rows) if session.table else 0,
        "staged_count": len(session.staging),
        "commit_in_flight": session.commit_in_flight,
    }


@app.get("/catalog")
def get_catalog(session: ImportSession = Depends(get_session)):
    return session.catalog.model_dump()


@app.put("/catalog")
def put_catalog(
    catalog: ReferenceCatalog, session: ImportSession = Depends(get_session)
):
    """Replace the reference catalog used to resolve names"""
    session.catalog = catalog
    return session.catalog.model_dump()


@app.post("/catalog/refresh")
async def refresh_catalog(
    session: ImportSession = Depends(get_session),
    client: CatalogClient = Depends(get_catalog_client),
):
    """Load the reference catalog from the expenses service"""
    try:
        session.catalog = await client.load()
    except CatalogError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return session.catalog.model_dump()


@app.post("/upload")
async def upload_file(
    file: UploadFile = File(...), session: ImportSession = Depends(get_session)
):
    """Upload and parse a CSV file, proposing a column mapping"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    if not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail=(
                "File must be a CSV file with one of the extensions "
                f"{', '.join(ALLOWED_EXTENSIONS)}. Received: {file.filename}"
            ),
        )

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="File is empty")

    tracer = get_tracer()
    trace = tracer.create_trace("import_upload", metadata={"filename": file.filename})
    try:
        table = session.load_file(contents)
    except ParseError as exc:
        tracer.add_span(trace, "parse_table", output_text=f"error: {exc}")
        raise HTTPException(status_code=400, detail=str(exc))
    finally:
        tracer.end_trace(trace)

    return {
        "message": "File uploaded successfully",
        "total_rows": len(table.rows),
        "rows": table.rows[:PREVIEW_ROWS],
        **mapping_response(session),
    }


@app.get("/mapping")
def get_mapping(session: ImportSession = Depends(get_session)):
    if session.table is None:
        raise HTTPException(
            status_code=404, detail="No file uploaded. Please upload a CSV first."
        )
    return mapping_response(session)


@app.put("/mapping")
def update_mapping(
    request: FieldMapping, session: ImportSession = Depends(get_session)
):
    """Override individual role assignments; null or "none" clears a role"""
    if session.table is None:
        raise HTTPException(
            status_code=404, detail="No file uploaded. Please upload a CSV first."
        )
    try:
        session.update_mapping(request.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return mapping_response(session)


@app.post("/preview")
def preview(
    request: PreviewRequest, session: ImportSession = Depends(get_session)
):
    """Expand the mapped rows into staged records for review"""
    if session.table is None:
        raise HTTPException(
            status_code=404, detail="No file uploaded. Please upload a CSV first."
        )

    previous_common_date = session.common_date
    if request.use_common_date:
        session.use_common_date(request.common_date or date.today())
    else:
        session.use_common_date(None)

    tracer = get_tracer()
    trace = tracer.create_trace(
        "import_preview", metadata={"mapping": session.mapping.model_dump()}
    )
    try:
        session.expand()
    except MappingIncomplete as exc:
        session.use_common_date(previous_common_date)
        raise HTTPException(
            status_code=409,
            detail={"message": str(exc), "missing_roles": exc.missing},
        )
    except (CatalogError, SessionBusy) as exc:
        session.use_common_date(previous_common_date)
        raise HTTPException(status_code=409, detail=str(exc))
    else:
        tracer.add_span(
            trace,
            "expand_rows",
            input_text=f"{len(session.table.rows)} rows",
            output_text=f"{len(session.staging)} staged, {session.skipped_rows} skipped",
        )
    finally:
        tracer.end_trace(trace)

    return staged_response(session)


@app.get("/staged")
def get_staged(session: ImportSession = Depends(get_session)):
    return staged_response(session)


@app.patch("/staged/{temp_id}")
def update_staged(
    temp_id: str,
    request: StagedExpenseUpdate,
    session: ImportSession = Depends(get_session),
):
    """Edit fields of one staged record"""
    try:
        record = session.update_record(temp_id, request.model_dump(exclude_unset=True))
    except SessionBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return {
        "updated": record is not None,
        "record": record.model_dump() if record else None,
        "total": round(session.staging.total(), 2),
    }


@app.delete("/staged/{temp_id}")
def delete_staged(temp_id: str, session: ImportSession = Depends(get_session)):
    try:
        removed = session.remove_record(temp_id)
    except SessionBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"removed": removed, **staged_response(session)}


@app.post("/commit")
async def commit(
    session: ImportSession = Depends(get_session),
    sink: ExpenseSink = Depends(get_sink),
):
    """Import all staged records as one batch"""
    if not len(session.staging):
        raise HTTPException(status_code=400, detail="Nothing to import")

    committer = BatchCommitter(sink, session.catalog)
    tracer = get_tracer()
    trace = tracer.create_trace(
        "import_commit", metadata={"count": len(session.staging)}
    )
    try:
        created = await session.commit(committer)
    except SessionBusy as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except CommitError as exc:
        tracer.add_span(trace, "create_batch", output_text=f"error: {exc}")
        raise HTTPException(status_code=502, detail=str(exc))
    finally:
        tracer.end_trace(trace)

    return {
        "message": "Expenses imported successfully",
        "count": len(created),
        "expenses": created,
    }


@app.post("/reset")
def reset(session: ImportSession = Depends(get_session)):
    session.reset()
    return {"message": "Import session reset"}
