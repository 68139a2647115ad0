import logging
import sqlite3

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .errors import APIError, BadRequestError, InternalError, ValidationFailedError
from .query import QueryCompileError
from .repositories import Repository, get_repository
from .responses import UTF8JSONResponse
from .routers import group_todos as group_todos_router
from .routers import todos as todos_router
from .schemas import validation_messages
from .search import SearchParseError
from .settings import get_settings

logger = logging.getLogger(__name__)

_PATH_MESSAGES = {
    "group_id": "group ID を正しく指定してください。",
    "todo_id": "todo ID を正しく指定してください。",
}

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "todos",
        "description": "Personal todos: daily/monthly/expired listings, CRUD and search.",
    },
    {
        "name": "group todos",
        "description": "Todos shared by a group; the caller must belong to the group.",
    },
]

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="Todo REST Service",
    description="Personal and group todos for the household budgeting app.",
    version="0.1.0",
    openapi_tags=openapi_tags,
    default_response_class=UTF8JSONResponse,
)

allow_all = (_settings.cors_allow_origins == ["*"]) or (len(_settings.cors_allow_origins) == 0)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all else _settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Accept", "Accept-Language"],
)


def _error_response(error: APIError) -> UTF8JSONResponse:
    return UTF8JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError) -> UTF8JSONResponse:
    """
    Render APIError subclasses as:
        {"status": <code>, "error": {"message": <message or list of messages>}}
    """
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error_response(exc)


@app.exception_handler(SearchParseError)
async def search_parse_error_handler(request: Request, exc: SearchParseError) -> UTF8JSONResponse:
    logger.info("rejected search param=%s: %s", exc.param, exc.message)
    return _error_response(BadRequestError(exc.message))


@app.exception_handler(QueryCompileError)
async def query_compile_error_handler(request: Request, exc: QueryCompileError) -> UTF8JSONResponse:
    logger.error("search query compilation failed: %s", exc)
    return _error_response(InternalError())


@app.exception_handler(sqlite3.Error)
async def database_error_handler(request: Request, exc: sqlite3.Error) -> UTF8JSONResponse:
    logger.exception("database error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error_response(InternalError())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> UTF8JSONResponse:
    """
    Map FastAPI request validation failures onto 400 responses.

    Bad path ids get their own message; body problems are reported as a list
    of per-field messages.
    """
    errors = exc.errors()
    for err in errors:
        loc = err.get("loc") or ()
        if len(loc) >= 2 and loc[0] == "path" and loc[1] in _PATH_MESSAGES:
            return _error_response(BadRequestError(_PATH_MESSAGES[loc[1]]))
    return _error_response(ValidationFailedError(validation_messages(errors)))


# PUBLIC_INTERFACE
@app.get("/readyz", summary="Readiness Check", tags=["health"])
def readyz(repo: Repository = Depends(get_repository)):
    """
    Readiness endpoint.

    Returns:
        {"message": "Healthy"} once the database answers queries.
    """
    repo.ping()
    return {"message": "Healthy"}


app.include_router(todos_router.router)
app.include_router(group_todos_router.router)


# PUBLIC_INTERFACE
def run() -> None:
    """Entry point for the ``todo-service`` console script."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=_settings.port)


if __name__ == "__main__":
    run()
