import azure.functions as func
import logging
from utils.cors import cors_response, json_response, message_response
from services.car_service import ValidationError
from services.user_service import AuthError, authenticate, register_user

logger = logging.getLogger(__name__)
bp = func.Blueprint()


def _json_body(req: func.HttpRequest) -> dict:
    try:
        data = req.get_json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


@bp.function_name(name="Signup")
@bp.route(route="auth/signup", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def signup(req: func.HttpRequest) -> func.HttpResponse:
    """
    Register a new user.

    Args:
        req: HTTP request containing JSON with name, email and password

    Returns:
        201 on success

    Raises:
        400: Missing fields or user already exists
        500: Server error
    """
    if req.method == "OPTIONS":
        return cors_response("", 204)

    data = _json_body(req)
    try:
        register_user(data.get("name"), data.get("email"), data.get("password"))
    except (ValidationError, AuthError) as e:
        return message_response(str(e), 400)
    except Exception as e:
        logger.exception("Signup failed")
        return message_response("Error creating user", 500, str(e))

    return message_response("User created successfully", 201)


@bp.function_name(name="Login")
@bp.route(route="auth/login", methods=["POST", "OPTIONS"],
          auth_level=func.AuthLevel.ANONYMOUS)
def login(req: func.HttpRequest) -> func.HttpResponse:
    """
    Authenticate user with email and password.

    Returns a bearer token valid for one hour along with basic user info.

    Raises:
        400: Missing fields, unknown email or wrong password
        500: Server error
    """
    if req.method == "OPTIONS":
        return cors_response("", 204)

    data = _json_body(req)
    try:
        token, user = authenticate(data.get("email"), data.get("password"))
    except (ValidationError, AuthError) as e:
        return message_response(str(e), 400)
    except Exception as e:
        logger.exception("Login failed")
        return message_response("Error logging in", 500, str(e))

    return json_response({
        "token": token,
        "user": {
            "id": str(user.id),
            "name": user.display_name,
            "email": user.email,
        },
    })
