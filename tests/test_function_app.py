from __future__ import annotations

import json

import azure.functions as func

import function_app


def test_blueprints_register_at_startup() -> None:
    assert function_app.FAILURES == {}
    assert function_app.REGISTERED == ["auth", "cars", "docs"]


def test_diag_reports_registration() -> None:
    diag = function_app.diag.build().get_user_function()

    resp = diag(func.HttpRequest(method="GET", url="/api/_diag", body=b""))

    assert json.loads(resp.get_body()) == {"registered": ["auth", "cars", "docs"], "failures": {}}


def test_openapi_document_lists_every_route() -> None:
    from routes import docs

    openapi = docs.openapi_document.build().get_user_function()

    resp = openapi(func.HttpRequest(method="GET", url="/api/openapi.json", body=b""))

    assert resp.status_code == 200
    assert resp.mimetype == "application/json"
    paths = json.loads(resp.get_body())["paths"]
    assert set(paths) == {"/auth/signup", "/auth/login", "/cars", "/cars/{car_id}"}
    assert set(paths["/cars"]) == {"get", "post"}
    assert {"get", "put", "delete"} <= set(paths["/cars/{car_id}"])
