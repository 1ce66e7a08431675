from typing import cast

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from cardclash.core.errors import InvariantViolationError, StoreUnavailableError
from cardclash.schemas.common import APIResponse


def http_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(HTTPException, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=APIResponse(status="error", message=exc.detail).model_dump(),
    )


def validation_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(RequestValidationError, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=APIResponse(
            status="error",
            message="Validation error",
            code="validation_error",
            data=[
                {"loc": err["loc"], "msg": err["msg"], "type": err["type"]} for err in exc.errors()
            ],
        ).model_dump(),
    )


def invariant_violation_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(InvariantViolationError, exc)
    logger.error(f"Battle {exc.battle_id} cannot continue: {exc.detail}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=APIResponse(
            status="error",
            code="invariant_violation",
            message=f"This battle can no longer be played ({exc.detail}). Return to the menu.",
        ).model_dump(),
    )


def store_unavailable_handler(_request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=APIResponse(
            status="error", code="store_unavailable", message=str(exc)
        ).model_dump(),
    )


def general_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=APIResponse(status="error", message=str(exc)).model_dump(),
    )
