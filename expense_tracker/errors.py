# expense_tracker/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class ApiError(Exception):
    """
    Raised by services and routes; rendered as-is by the handler below.

    By default the body is `{"success": False, "message": ...}` plus any extra
    keys; `key="error"` swaps the message key. Pass `body=` for resources
    whose clients expect a different shape (e.g. `{"error": ...}` on expenses).
    """

    def __init__(self, status_code: int, message: str, *, key: str = "message",
                 body: dict | None = None, **extra):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.body = body if body is not None else {"success": False, key: message, **extra}


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "form")]
        msg = str(err.get("msg", "Invalid value"))
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out.append({"field": ".".join(loc), "message": msg})
    return out


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            log.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(exc.body, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            {"success": False, "message": "Validation failed", "errors": _validation_errors(exc)},
            status_code=400,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse({"error": "Route not found"}, status_code=404)
        return JSONResponse({"success": False, "message": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"success": False, "message": "Server error"}, status_code=500)
