"""
Global exception handlers mapping business codes to HTTP responses.
"""
import traceback
import uuid

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from .response import error_response
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException


CODE_TO_HTTP_STATUS = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_MISSING: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.BUSINESS_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,

    PaymentCode.PROVIDER_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.PROVIDER_RECOVERABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    PaymentCode.SIGNATURE_ERROR: http_status.HTTP_400_BAD_REQUEST,
    PaymentCode.CONFIGURATION_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    PaymentCode.COMPLETION_FAILED: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def business_code_to_http_status(code: int) -> int:
    """HTTP status for a business code (400 when unmapped)."""
    return CODE_TO_HTTP_STATUS.get(code, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(getattr(request, "state", object()), "request_id", None) or str(uuid.uuid4())


def register_exception_handlers(app: FastAPI):
    """
    Register the global exception handlers.

    Args:
        app: FastAPI application
    """
    logger = get_logger(__name__)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        request_id = _request_id(request)
        status_code = business_code_to_http_status(exc.code)
        if status_code >= 500:
            logger.error(
                "business_exception",
                request_id=request_id,
                code=int(exc.code),
                error_type=exc.error_type,
                error=exc.message,
            )
        response = error_response(
            code=exc.code,
            message=exc.message,
            error_type=exc.error_type,
            details=exc.details,
            field=exc.field,
            request_id=request_id,
        )
        return JSONResponse(status_code=status_code, content=response.model_dump(mode='json'))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first_error = errors[0] if errors else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", [])[1:])

        response = error_response(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=f"Validation failed: {first_error.get('msg', 'unknown')}",
            error_type="ValidationError",
            details={"errors": [{"loc": list(e.get("loc", [])), "msg": e.get("msg")} for e in errors]},
            field=field,
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=response.model_dump(mode='json')
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code_mapping = {
            404: BusinessCode.NOT_FOUND,
            500: BusinessCode.SYSTEM_ERROR,
            503: BusinessCode.SERVICE_UNAVAILABLE,
        }
        code = code_mapping.get(exc.status_code, BusinessCode.BUSINESS_ERROR)

        response = error_response(
            code=code,
            message=str(exc.detail),
            error_type="HTTPError",
            details={"status_code": exc.status_code},
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=response.model_dump(mode='json'),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = _request_id(request)

        details = None
        if app.debug:
            details = {
                "exception": str(exc),
                "traceback": traceback.format_exc()
            }

        response = error_response(
            code=BusinessCode.SYSTEM_ERROR,
            message="Internal server error",
            error_type="SystemError",
            details=details,
            request_id=request_id,
        )

        logger.error(
            "unhandled_exception",
            request_id=request_id,
            error=str(exc),
            exc_info=True,
        )

        return JSONResponse(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response.model_dump(mode='json')
        )
