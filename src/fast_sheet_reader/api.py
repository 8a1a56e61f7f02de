"""FastAPI application exposing the sheet reader over HTTP."""

import io
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Any

from fastapi import (
    FastAPI,
    File,
    Form,
    HTTPException,
    Request,
    UploadFile,
    status,
)
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fast_sheet_reader import __version__
from fast_sheet_reader.config import settings, validate_settings_on_startup
from fast_sheet_reader.models import (
    ErrorDetail,
    HealthResponse,
    ReadResponse,
    SheetInfo,
    SheetsResponse,
)
from fast_sheet_reader.services.sheet_reader import ReadOptions, SheetReader
from fast_sheet_reader.services.workbook_source import (
    SUPPORTED_EXTENSIONS,
    open_workbook,
    parse_sheet_selector,
    summarize_sheets,
)
from fast_sheet_reader.sheet_document import ReadResult, SheetSummary
from fast_sheet_reader.utils.exceptions import (
    ErrorCode,
    FileTooLargeError,
    FSRError,
    UnsupportedFormatError,
    ValidationError,
)
from fast_sheet_reader.utils.logging import (
    clear_context,
    configure_logging,
    get_logger,
    get_request_id,
    set_request_id,
)

# Configure structured logging using settings
configure_logging(level=settings.log_level_int)
logger = get_logger(__name__)


async def _read_upload(file: UploadFile, request_id: str | None) -> bytes:
    """Validate an uploaded workbook and return its bytes."""
    if file.filename is None or file.filename == "":
        logger.warning("Request missing file", request_id=request_id)
        raise ValidationError(message="A workbook file must be provided", field="file")

    extension = Path(file.filename).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported workbook format: {extension or '(no extension)'}",
            format_name=extension or None,
            file_path=file.filename,
            details={"supported_extensions": sorted(SUPPORTED_EXTENSIONS)},
        )

    content = await file.read()
    if len(content) > settings.max_file_size_bytes:
        logger.warning(
            "File too large",
            file_size=len(content),
            max_size=settings.max_file_size_bytes,
            request_id=request_id,
        )
        raise FileTooLargeError(
            file_size=len(content),
            max_size=settings.max_file_size_bytes,
            file_path=file.filename,
        )
    return content


def _summarize(content: bytes) -> list[SheetSummary]:
    workbook = open_workbook(io.BytesIO(content))
    try:
        return summarize_sheets(workbook)
    finally:
        workbook.close()


def _read_records(options: ReadOptions) -> ReadResult:
    with SheetReader(options) as reader:
        return reader.read()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Fast Sheet Reader API",
        description=(
            "Streams the rows of uploaded spreadsheets and returns them as "
            "records, optionally mapped through a column schema."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Configure CORS using settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    validate_settings_on_startup(settings)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next: Any) -> Any:
        """Assign a request ID, expose it in logs and echo it in the response."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        set_request_id(request_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_context()

    @app.exception_handler(FSRError)
    async def fsr_exception_handler(request: Request, exc: FSRError) -> JSONResponse:
        """Turn library errors into structured error responses."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.error(
            f"FSR Error: {exc.message}",
            error_code=exc.error_code.value,
            http_status=exc.http_status,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content=ErrorDetail(
                detail=exc.message,
                error_code=exc.error_code.value,
                details=exc.details if exc.details else None,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        """Custom exception handler for HTTP exceptions."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.warning(
            f"HTTP Error: {exc.detail}",
            status_code=exc.status_code,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorDetail(
                detail=str(exc.detail),
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all handler that hides internals unless debug is on."""
        request_id = getattr(request.state, "request_id", get_request_id())
        logger.exception(
            f"Unexpected error: {type(exc).__name__}",
            error_type=type(exc).__name__,
        )
        if settings.debug:
            detail = f"Internal server error: {type(exc).__name__}: {exc}"
        else:
            detail = "Internal server error. Please try again later."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorDetail.from_error_code(
                ErrorCode.UNEXPECTED_ERROR,
                detail=detail,
                request_id=request_id,
            ).model_dump(exclude_none=True),
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request) -> dict[str, Any]:
        """Report service status, time and version."""
        request_id = getattr(request.state, "request_id", None)
        logger.debug("Health check requested", request_id=request_id)
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
        }

    @app.post(
        "/sheets",
        response_model=SheetsResponse,
        tags=["Workbooks"],
        responses={
            400: {"model": ErrorDetail, "description": "Unreadable workbook"},
            413: {"model": ErrorDetail, "description": "File too large"},
            415: {"model": ErrorDetail, "description": "Unsupported format"},
        },
    )
    async def list_sheets(
        request: Request,
        file: Annotated[UploadFile, File(description="Workbook to inspect")],
    ) -> dict[str, Any]:
        """List the sheets of an uploaded workbook with their used ranges."""
        request_id = getattr(request.state, "request_id", None)
        content = await _read_upload(file, request_id)
        summaries = await run_in_threadpool(_summarize, content)

        logger.info(
            "Workbook inspected",
            filename=file.filename,
            sheets=len(summaries),
            request_id=request_id,
        )
        return {
            "filename": file.filename or "unknown",
            "sheets": [SheetInfo.from_summary(s) for s in summaries],
        }

    @app.post(
        "/read",
        response_model=ReadResponse,
        tags=["Workbooks"],
        responses={
            400: {"model": ErrorDetail, "description": "Invalid schema or sheet"},
            404: {"model": ErrorDetail, "description": "Sheet not found"},
            413: {"model": ErrorDetail, "description": "File too large"},
            415: {"model": ErrorDetail, "description": "Unsupported format"},
        },
    )
    async def read_workbook(
        request: Request,
        file: Annotated[UploadFile, File(description="Workbook to read")],
        sheet: Annotated[
            str | None, Form(description="Sheet name, or 0-based index")
        ] = None,
        has_header: Annotated[bool | None, Form()] = None,
        header_prefix: Annotated[str | None, Form()] = None,
        lower_case_headers: Annotated[bool | None, Form()] = None,
        backwards: Annotated[bool, Form()] = False,
        all_sheets: Annotated[bool, Form()] = False,
        column_schema: Annotated[
            str | None,
            Form(alias="schema", description="Column schema as JSON text"),
        ] = None,
    ) -> dict[str, Any]:
        """Read every row of an uploaded workbook and return the records.

        Header options default to the service settings.
        """
        request_id = getattr(request.state, "request_id", None)
        content = await _read_upload(file, request_id)

        options = ReadOptions(
            input=io.BytesIO(content),
            sheetname=parse_sheet_selector(sheet),
            schema=column_schema or None,
            backwards=backwards,
            all_sheets=all_sheets,
            use_memory_for_items=True,
        )
        if has_header is not None:
            options.has_header = has_header
        if header_prefix:
            options.header_prefix = header_prefix
        if lower_case_headers is not None:
            options.lower_case_headers = lower_case_headers

        result = await run_in_threadpool(_read_records, options)
        result.raise_for_error()

        records = result.records or []
        logger.info(
            "Workbook read",
            filename=file.filename,
            rows_processed=result.rows_processed,
            records=len(records),
            request_id=request_id,
        )
        return {
            "filename": file.filename or "unknown",
            "sheets": result.sheets,
            "rows_processed": result.rows_processed,
            "record_count": len(records),
            "aborted": result.aborted,
            "records": records,
        }

    return app


# Create the default app instance
app = create_app()
