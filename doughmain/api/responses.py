# doughmain/api/responses.py
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from doughmain.core.errors import CallableError


# HTTP-style endpoints answer errors as {"error": "<message>"}
def bad_request(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content={"error": message}
    )


def error_response(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(error)},
    )


# Callable endpoints answer errors as {"error": {"status": ..., "message": ...}}
def callable_error_response(error: CallableError) -> JSONResponse:
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


def validation_message(error: RequestValidationError) -> str:
    # loc starts with "body"/"query"; the field path follows
    problems = []
    for item in error.errors():
        field = ".".join(str(part) for part in item.get("loc", ())[1:])
        problems.append(f"{field}: {item['msg']}" if field else item["msg"])
    return "; ".join(problems) or "Invalid request"
