"""REST API exposing the expense service over FastAPI."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Request, Response, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from penny.database.connection import DatabaseConfig, DatabaseManager
from penny.logging_setup import get_logger
from penny.repositories.base import ExpenseNotFoundError, StoreError
from penny.repositories.sqlite_expense_repository import SQLiteExpenseRepository
from penny.services.expense_service import ExpenseService
from penny.services.validation import ValidationError

logger = get_logger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])


class ExpenseCreate(BaseModel):
    """
    Body of POST /expenses.

    Fields are loose here; ExpenseService does the real validation
    so single creates and CSV rows share the same rules and messages.
    """
    date: Any = None
    amount: Any = None
    vendorName: Any = None
    description: Optional[str] = None


def get_service(request: Request) -> ExpenseService:
    return request.app.state.service


def error_body(status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"status": status_code, "error": message}
    if details:
        body["details"] = details
    return body


# Fixed paths are registered before /{expense_id} so they are not read as IDs

@router.get("/dashboard")
def dashboard(service: ExpenseService = Depends(get_service)):
    """Monthly category totals, top vendors and anomalies, recomputed per call."""
    return service.get_dashboard().to_dict()


@router.get("/categories")
def categories(service: ExpenseService = Depends(get_service)) -> Dict[str, str]:
    """The active vendor token -> category rules."""
    return service.get_category_rules()


@router.post("/upload-csv")
async def upload_csv(
    file: UploadFile = File(...),
    service: ExpenseService = Depends(get_service),
) -> Dict[str, Any]:
    """Bulk-import a CSV file. Row failures are reported in the body, never as an error status."""
    content = await file.read()
    logger.info("CSV upload '%s' (%d bytes)", file.filename, len(content))
    result = await run_in_threadpool(service.import_csv, content)
    return result.to_dict()


@router.get("")
def list_expenses(service: ExpenseService = Depends(get_service)):
    return [expense.to_dict() for expense in service.list_expenses()]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseCreate,
    service: ExpenseService = Depends(get_service),
):
    """Add an expense; category and anomaly flag are derived on creation."""
    expense = service.create_expense(
        date=payload.date,
        amount=payload.amount,
        vendor_name=payload.vendorName,
        description=payload.description,
    )
    return expense.to_dict()


@router.get("/{expense_id}")
def get_expense(expense_id: int, service: ExpenseService = Depends(get_service)):
    return service.get_expense(expense_id).to_dict()


@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: int, service: ExpenseService = Depends(get_service)) -> Response:
    service.delete_expense(expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ValidationError)
    async def handle_validation(_: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("Invalid expense: %s=%s", exc.field, exc.message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(400, "Validation failed", {exc.field: exc.message}),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        details = {
            ".".join(str(part) for part in err.get("loc", ())): err.get("msg", "invalid")
            for err in exc.errors()
        }
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(400, "Validation failed", details),
        )

    @app.exception_handler(ExpenseNotFoundError)
    async def handle_not_found(_: Request, exc: ExpenseNotFoundError) -> JSONResponse:
        logger.warning("Not found: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=error_body(404, str(exc)),
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(_: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store failure", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(500, "An unexpected error occurred"),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(_: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(500, "An unexpected error occurred"),
        )


def create_app(
    service: Optional[ExpenseService] = None,
    db_config: Optional[DatabaseConfig] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Service to expose. If None, one is built on a SQLite store.
        db_config: Database location used when `service` is None
    """
    if service is None:
        db_manager = DatabaseManager(db_config or DatabaseConfig())
        db_manager.initialize()
        service = ExpenseService(SQLiteExpenseRepository(db_manager))

    app = FastAPI(title="Penny Expense API", version="0.1.0")
    app.state.service = service
    app.include_router(router)
    _register_exception_handlers(app)
    return app
