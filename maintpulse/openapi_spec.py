"""
OpenAPI 3 spec for the local dashboard API: paths defined here, schemas
marshalled from maintpulse.models. Served at /openapi.json and /openapi.yaml.
"""
from apispec import APISpec

from maintpulse.openapi_schemas import (
    alert_schema,
    alerts_state_schema,
    schemas_from_models,
    session_schema,
)

REF_SESSION = {"$ref": "#/components/schemas/Session"}
REF_NOTIFICATION = {"$ref": "#/components/schemas/Notification"}
REF_ALERTS_STATE = {"$ref": "#/components/schemas/AlertsState"}
REF_SETTINGS = {"$ref": "#/components/schemas/Settings"}
REF_ERROR = {"$ref": "#/components/schemas/Error"}
OK_SCHEMA = {"type": "object", "properties": {"ok": {"type": "boolean"}}}


def _resp_json(schema, status="200", description="OK"):
    return {
        status: {
            "description": description,
            "content": {"application/json": {"schema": schema}},
        }
    }


def _backend_errors():
    out = _resp_json(REF_ERROR, "401", "Not logged in")
    out.update(_resp_json(REF_ERROR, "502", "Backend unreachable"))
    return out


def build_spec() -> APISpec:
    spec = APISpec(
        title="maintpulse dashboard API",
        version="1.0.0",
        openapi_version="3.0.3",
        info=dict(
            description=(
                "Local API of the maintpulse notification client: session, durable "
                "notifications (proxied to the maintenance backend) and live alerts "
                "received over the push connection."
            ),
        ),
    )

    spec.components.schema("Session", session_schema())
    spec.components.schema("Alert", alert_schema())
    spec.components.schema("AlertsState", alerts_state_schema())
    spec.components.schema("Error", {"type": "object", "properties": {"error": {"type": "string"}}})
    for name, schema in schemas_from_models().items():
        spec.components.schema(name, schema)

    id_param = {"name": "notif_id", "in": "path", "required": True, "schema": {"type": "string"}}

    spec.path(path="/session", operations=dict(
        get=dict(summary="Current session", operationId="getSession",
                 responses=_resp_json(REF_SESSION)),
    ))
    spec.path(path="/login", operations=dict(
        post=dict(
            summary="Log in",
            description="Authenticates against the backend and opens the push connection.",
            operationId="login",
            requestBody={"content": {"application/json": {"schema": {
                "type": "object",
                "properties": {"email": {"type": "string"}, "password": {"type": "string"}},
                "required": ["email", "password"],
            }}}},
            responses={**_resp_json(REF_SESSION), **_resp_json(REF_ERROR, "400", "Missing fields"),
                       **_resp_json(REF_ERROR, "502", "Backend unreachable or no credential in reply")},
        ),
    ))
    spec.path(path="/signup", operations=dict(
        post=dict(
            summary="Create an account and log in",
            operationId="signup",
            requestBody={"content": {"multipart/form-data": {"schema": {
                "type": "object",
                "properties": {
                    "email": {"type": "string"},
                    "name": {"type": "string"},
                    "password": {"type": "string"},
                    "role": {"type": "string"},
                    "image": {"type": "string", "format": "binary"},
                },
                "required": ["email", "name", "password", "role"],
            }}}},
            responses={**_resp_json(REF_SESSION), **_resp_json(REF_ERROR, "400", "Missing fields"),
                       **_resp_json(REF_ERROR, "502", "Backend unreachable or no credential in reply")},
        ),
    ))
    spec.path(path="/logout", operations=dict(
        post=dict(summary="Log out", operationId="logout", responses=_resp_json(OK_SCHEMA)),
    ))
    spec.path(path="/me", operations=dict(
        get=dict(summary="Current user profile", operationId="getMe",
                 responses={**_resp_json({"type": "object"}), **_backend_errors()}),
    ))
    spec.path(path="/notifications", operations=dict(
        get=dict(summary="List notifications", operationId="listNotifications",
                 responses={**_resp_json({"type": "array", "items": REF_NOTIFICATION}),
                            **_backend_errors()}),
    ))
    spec.path(path="/notifications/lastfour", operations=dict(
        get=dict(summary="Four most recent notifications", operationId="recentNotifications",
                 responses={**_resp_json({"type": "array", "items": REF_NOTIFICATION}),
                            **_backend_errors()}),
    ))
    spec.path(path="/notifications/{notif_id}", operations=dict(
        get=dict(summary="Open a notification",
                 description="Returns the notification and marks it read if it was unread.",
                 operationId="openNotification", parameters=[id_param],
                 responses={**_resp_json(REF_NOTIFICATION), **_backend_errors()}),
        delete=dict(summary="Delete a notification", operationId="deleteNotification",
                    parameters=[id_param],
                    responses={**_resp_json(OK_SCHEMA), **_backend_errors()}),
    ))
    spec.path(path="/notifications/{notif_id}/read", operations=dict(
        patch=dict(summary="Mark read", operationId="markNotificationRead", parameters=[id_param],
                   responses={**_resp_json(OK_SCHEMA), **_backend_errors()}),
    ))
    spec.path(path="/alerts", operations=dict(
        get=dict(summary="Live alerts and push connection status", operationId="getAlerts",
                 responses=_resp_json(REF_ALERTS_STATE)),
    ))
    spec.path(path="/alerts/{alert_id}/dismiss", operations=dict(
        post=dict(summary="Dismiss an alert", operationId="dismissAlert",
                  parameters=[{"name": "alert_id", "in": "path", "required": True,
                               "schema": {"type": "string"}}],
                  responses=_resp_json(OK_SCHEMA)),
    ))
    spec.path(path="/alerts/reconnect", operations=dict(
        post=dict(summary="Restart a push connection that gave up", operationId="reconnect",
                  responses=_resp_json(OK_SCHEMA)),
    ))
    spec.path(path="/logs", operations=dict(
        get=dict(
            summary="Recent log lines",
            operationId="getLogs",
            parameters=[
                {"name": "tail", "in": "query",
                 "schema": {"type": "integer", "default": 200, "minimum": 1, "maximum": 1000}},
                {"name": "level", "in": "query", "schema": {
                    "type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]}},
                {"name": "format", "in": "query", "schema": {"type": "string", "enum": ["json", "text"]}},
            ],
            responses={**_resp_json({"type": "object"}), **_resp_json(REF_ERROR, "400", "Bad query")},
        ),
    ))
    spec.path(path="/settings", operations=dict(
        get=dict(summary="Get settings", operationId="getSettings", responses=_resp_json(REF_SETTINGS)),
        post=dict(
            summary="Update settings",
            description="log_level applies now; alert settings apply from the next login.",
            operationId="updateSettings",
            requestBody={"content": {"application/json": {"schema": REF_SETTINGS}}},
            responses={**_resp_json(REF_SETTINGS), **_resp_json(REF_ERROR, "400", "Validation error")},
        ),
    ))
    return spec


# Lazy singleton so we build once
_spec: APISpec | None = None


def get_openapi_dict() -> dict:
    global _spec
    if _spec is None:
        _spec = build_spec()
    return _spec.to_dict()


def get_openapi_yaml() -> str:
    import yaml
    return yaml.dump(
        get_openapi_dict(),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
    )
