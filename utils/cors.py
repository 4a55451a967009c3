import json
from typing import Any, Union
import azure.functions as func

def cors_response(
    body: Union[str, bytes] = b"",
    status: int = 200,
    mime: str = "text/plain"
) -> func.HttpResponse:
    return func.HttpResponse(
        body=body,
        status_code=status,
        mimetype=mime,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
        },
    )

def json_response(data: Any, status: int = 200) -> func.HttpResponse:
    return cors_response(json.dumps(data), status, "application/json")

def message_response(message: str, status: int, error: str | None = None) -> func.HttpResponse:
    body = {"message": message}
    if error is not None:
        body["error"] = error
    return json_response(body, status)
