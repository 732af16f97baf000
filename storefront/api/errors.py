from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.domain.errors import (
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    InvalidStatusTransition,
    NotFound,
    OrderError,
    ProductNotFound,
    StorageRejected,
)

STATUS_CODES = {
    EmptyCart: 400,
    InvalidQuantity: 400,
    ProductNotFound: 404,
    NotFound: 404,
    InsufficientStock: 409,
    InvalidStatusTransition: 409,
    StorageRejected: 500,
}


def status_code_for(error: OrderError) -> int:
    if error.transient:
        return 503
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 400


async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    headers = {"Retry-After": "1"} if exc.transient else None
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict(), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderError, order_error_handler)
