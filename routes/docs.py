import azure.functions as func
from utils.cors import cors_response, json_response
from services.car_service import MAX_IMAGES

bp = func.Blueprint()

_BEARER = [{"bearerAuth": []}]


def _ref(name: str) -> dict:
    return {"$ref": f"#/components/schemas/{name}"}


def _json(schema: dict) -> dict:
    return {"application/json": {"schema": schema}}


def _message(description: str) -> dict:
    return {"description": description, "content": _json(_ref("Message"))}


_CAR_ID = {"in": "path", "name": "car_id", "required": True, "schema": {"type": "string", "format": "uuid"}}

_IMAGE_FILES = {
    "type": "array",
    "maxItems": MAX_IMAGES,
    "items": {"type": "string", "format": "binary"},
}

OPENAPI = {
    "openapi": "3.0.0",
    "info": {
        "title": "Car Management API",
        "version": "1.0.0",
        "description": "Users register, log in and manage their own cars and car images.",
    },
    "servers": [{"url": "/api"}],
    "components": {
        "securitySchemes": {
            "bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
        },
        "schemas": {
            "Message": {
                "type": "object",
                "properties": {"message": {"type": "string"}, "error": {"type": "string"}},
            },
            "Image": {
                "type": "object",
                "properties": {
                    "url": {"type": "string"},
                    "public_id": {"type": "string"},
                    "width": {"type": "integer", "nullable": True},
                    "height": {"type": "integer", "nullable": True},
                },
            },
            "Car": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "format": "uuid"},
                    "user": {"type": "string", "format": "uuid"},
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "tags": {"type": "array", "items": {"type": "string"}},
                    "images": {"type": "array", "items": _ref("Image")},
                    "created_at": {"type": "string", "format": "date-time"},
                },
            },
        },
    },
    "paths": {
        "/auth/signup": {
            "post": {
                "summary": "Register a new user",
                "tags": ["Auth"],
                "requestBody": {
                    "required": True,
                    "content": _json({
                        "type": "object",
                        "required": ["name", "email", "password"],
                        "properties": {
                            "name": {"type": "string"},
                            "email": {"type": "string"},
                            "password": {"type": "string"},
                        },
                    }),
                },
                "responses": {
                    "201": _message("User registered successfully"),
                    "400": _message("Invalid input or user already exists"),
                },
            },
        },
        "/auth/login": {
            "post": {
                "summary": "Login a user",
                "tags": ["Auth"],
                "requestBody": {
                    "required": True,
                    "content": _json({
                        "type": "object",
                        "required": ["email", "password"],
                        "properties": {"email": {"type": "string"}, "password": {"type": "string"}},
                    }),
                },
                "responses": {
                    "200": {
                        "description": "Login successful",
                        "content": _json({
                            "type": "object",
                            "properties": {
                                "token": {"type": "string"},
                                "user": {
                                    "type": "object",
                                    "properties": {
                                        "id": {"type": "string", "format": "uuid"},
                                        "name": {"type": "string"},
                                        "email": {"type": "string"},
                                    },
                                },
                            },
                        }),
                    },
                    "400": _message("Invalid credentials"),
                },
            },
        },
        "/cars": {
            "get": {
                "summary": "Retrieve cars owned by the authenticated user",
                "tags": ["Cars"],
                "security": _BEARER,
                "responses": {
                    "200": {"description": "List of cars", "content": _json({"type": "array", "items": _ref("Car")})},
                    "401": _message("Token missing or invalid"),
                    "500": _message("Could not fetch cars"),
                },
            },
            "post": {
                "summary": "Create a new car",
                "tags": ["Cars"],
                "security": _BEARER,
                "requestBody": {
                    "required": True,
                    "content": {
                        "multipart/form-data": {
                            "schema": {
                                "type": "object",
                                "required": ["title", "description"],
                                "properties": {
                                    "title": {"type": "string"},
                                    "description": {"type": "string"},
                                    "tags": {"type": "string", "description": "Comma separated"},
                                    "images": _IMAGE_FILES,
                                },
                            },
                        },
                    },
                },
                "responses": {
                    "201": {"description": "Car created", "content": _json(_ref("Car"))},
                    "400": _message("Missing fields, too many images or unsupported file"),
                    "401": _message("Token missing or invalid"),
                    "500": _message("Upload or database failure"),
                },
            },
        },
        "/cars/{car_id}": {
            "parameters": [_CAR_ID],
            "get": {
                "summary": "Get a car by ID",
                "tags": ["Cars"],
                "security": _BEARER,
                "responses": {
                    "200": {"description": "Car details", "content": _json(_ref("Car"))},
                    "401": _message("Token missing or invalid"),
                    "404": _message("Car not found"),
                },
            },
            "put": {
                "summary": "Update a car",
                "tags": ["Cars"],
                "security": _BEARER,
                "requestBody": {
                    "required": True,
                    "content": {
                        "multipart/form-data": {
                            "schema": {
                                "type": "object",
                                "required": ["title", "description", "existingImages"],
                                "properties": {
                                    "title": {"type": "string"},
                                    "description": {"type": "string"},
                                    "tags": {"type": "string", "description": "Comma separated"},
                                    "existingImages": {
                                        "type": "string",
                                        "description": "JSON array of {url, public_id} to keep, in display order",
                                    },
                                    "newImages": _IMAGE_FILES,
                                },
                            },
                        },
                    },
                },
                "responses": {
                    "200": {"description": "Car updated", "content": _json(_ref("Car"))},
                    "400": _message("Invalid input or image limit exceeded"),
                    "401": _message("Token missing or invalid"),
                    "404": _message("Car not found"),
                    "500": _message("Upload, delete or database failure"),
                },
            },
            "delete": {
                "summary": "Delete a car",
                "tags": ["Cars"],
                "security": _BEARER,
                "responses": {
                    "200": _message("Car deleted successfully"),
                    "401": _message("Token missing or invalid"),
                    "404": _message("Car not found"),
                    "500": _message("Image delete failed"),
                },
            },
        },
    },
}


@bp.function_name(name="OpenApiDocument")
@bp.route(route="openapi.json", methods=["GET", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
def openapi_document(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return cors_response("", 204)
    return json_response(OPENAPI)
