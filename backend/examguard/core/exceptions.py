"""
Error taxonomy shared by the services and the HTTP/realtime layers.

Services raise these; ``register_exception_handlers`` maps them to
HTTP responses. ``ChannelError`` never leaves the realtime layer.
"""
import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ExamGuardError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_content(self) -> dict:
        return {"error": self.message}


class ValidationError(ExamGuardError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ExamGuardError):
    status_code = status.HTTP_404_NOT_FOUND


class LockoutError(ExamGuardError):
    """A student terminated for violations tried to rejoin the same exam."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, session: Any, message: str = "Student has been terminated from this exam due to violations"):
        super().__init__(message)
        self.session = session

    def to_content(self) -> dict:
        from ..schemas.student_session import StudentSession

        return {
            "error": self.message,
            "terminated": True,
            "session": StudentSession.model_validate(self.session).model_dump(by_alias=True),
        }


class SessionClosedError(ExamGuardError):
    status_code = status.HTTP_409_CONFLICT


class StoreError(ExamGuardError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ChannelError(ExamGuardError):
    pass


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ExamGuardError)
    async def examguard_error_handler(request: Request, exc: ExamGuardError):
        if isinstance(exc, StoreError):
            logger.error(f"Store failure on {request.method} {request.url.path}: {exc.message}", exc_info=exc.__cause__)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "error": "Internal server error",
                    "message": "The session store is unavailable. Please retry the request.",
                    "request_id": getattr(request.state, "request_id", "unknown"),
                },
            )
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_content()))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=jsonable_encoder({"error": "Invalid request body", "details": exc.errors()}),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": getattr(request.state, "request_id", "unknown"),
            },
        )

