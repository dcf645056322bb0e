"""
shared/middleware/functions.py
Request-handling wrapper shared by every function endpoint.

Routers created with `function_router()` use FunctionRoute, which:
- logs "Function started" under the function's name (derived from its path)
- turns FunctionError subclasses into {"error": message} with their status
- turns request validation failures into 400 {"error": message}
- turns anything unexpected into 500 {"error": message}

CORS (including OPTIONS preflight) is handled once by CORSMiddleware in main.py.
"""

import logging
from typing import Callable, Coroutine, Any

from fastapi import APIRouter, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from shared.utils.errors import FunctionError
from shared.utils.steps import StepLogger

logger = logging.getLogger(__name__)


def function_name_for(path: str) -> str:
    """'/create-connect-account' -> 'CREATE-CONNECT-ACCOUNT'"""
    return path.strip("/").replace("/", "-").upper() or "ROOT"


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


class FunctionRoute(APIRoute):
    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_handler = super().get_route_handler()
        log = StepLogger(function_name_for(self.path))

        async def handler(request: Request) -> Response:
            log.step("Function started")
            try:
                return await original_handler(request)
            except RequestValidationError as exc:
                message = _validation_message(exc)
                log.error("ERROR", message=message)
                return JSONResponse({"error": message}, status_code=400)
            except FunctionError as exc:
                log.error("ERROR", message=exc.message)
                return JSONResponse({"error": exc.message}, status_code=exc.status_code)
            except Exception as exc:
                log.error("ERROR", message=str(exc))
                logger.exception("Unhandled error in %s", self.path)
                return JSONResponse({"error": str(exc)}, status_code=500)

        return handler


def function_router(**kwargs: Any) -> APIRouter:
    """APIRouter whose routes all go through FunctionRoute."""
    return APIRouter(route_class=FunctionRoute, **kwargs)
