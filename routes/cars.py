import azure.functions as func
import logging
from utils.cors import cors_response, json_response, message_response
from utils.multipart import MultipartError, parse_form
from auth.deps import current_user_from_request
from services import car_service as cars
from services.car_service import DependencyFailure, NotFound, ValidationError

logger = logging.getLogger(__name__)
bp = func.Blueprint()


@bp.function_name(name="Cars")
@bp.route(route="cars", methods=["GET", "POST", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
def cars_collection(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return cors_response("", 204)

    user = current_user_from_request(req)
    if not user:
        return message_response("Unauthorized", 401)

    if req.method == "GET":
        try:
            return json_response(cars.list_cars(user.id))
        except Exception as e:
            logger.exception("list_cars failed for user=%s", user.id)
            return message_response("Error fetching cars", 500, str(e))

    # POST
    try:
        form = parse_form(req)
        car = cars.create_car(
            user.id,
            form.get("title"),
            form.get("description"),
            form.get("tags"),
            form.files_for("images"),
        )
    except (MultipartError, ValidationError) as e:
        return message_response(str(e), 400)
    except DependencyFailure as e:
        return message_response("Error creating car", 500, str(e))
    except Exception as e:
        logger.exception("create_car failed for user=%s", user.id)
        return message_response("Error creating car", 500, str(e))

    return json_response(car, 201)


@bp.function_name(name="CarItem")
@bp.route(route="cars/{car_id}", methods=["GET", "PUT", "DELETE", "OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
def car_item(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return cors_response("", 204)

    user = current_user_from_request(req)
    if not user:
        return message_response("Unauthorized", 401)

    car_id = req.route_params.get("car_id")

    try:
        if req.method == "GET":
            return json_response(cars.get_car(user.id, car_id))

        if req.method == "PUT":
            form = parse_form(req)
            car = cars.update_car(
                user.id,
                car_id,
                form.get("title"),
                form.get("description"),
                form.get("tags"),
                form.get("existingImages"),
                form.files_for("newImages"),
            )
            return json_response(car)

        # DELETE
        cars.delete_car(user.id, car_id)
        return message_response("Car deleted successfully", 200)

    except NotFound as e:
        return message_response(str(e), 404)
    except (MultipartError, ValidationError) as e:
        return message_response(str(e), 400)
    except DependencyFailure as e:
        return message_response(f"Error {_verb(req.method)} car", 500, str(e))
    except Exception as e:
        logger.exception("car_item %s failed for user=%s car=%s", req.method, user.id, car_id)
        return message_response(f"Error {_verb(req.method)} car", 500, str(e))


def _verb(method: str) -> str:
    return {"GET": "fetching", "PUT": "updating", "DELETE": "deleting"}.get(method, "processing")
