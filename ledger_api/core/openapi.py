"""OpenAPI metadata customization.

Adds tag descriptions and documents the error envelope and the 429/503
responses shared by every ledger operation, keeping documentation concerns
out of the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Transactions",
        "description": "Create, list, delete and summarize ledger transactions per owner.",
    },
    {
        "name": "Health",
        "description": "Liveness check.",
    },
]

ERROR_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "error": {
            "type": "object",
            "properties": {
                "code": {"type": "string"},
                "message": {"type": "string"},
                "request_id": {"type": "string", "nullable": True},
                "details": {"type": "object"},
            },
            "required": ["code", "message"],
        }
    },
}

_SHARED_RESPONSES = {
    "400": "Missing or invalid input",
    "429": "Rate limit exceeded",
    "503": "Rate limiter unavailable",
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and shared error responses.

    - Registers ``ErrorResponse`` under components.schemas
    - Adds 400/429/503 responses to every transaction operation
    - Adds tag descriptions if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("schemas", {}).setdefault("ErrorResponse", ERROR_SCHEMA)
        error_ref = {"$ref": "#/components/schemas/ErrorResponse"}

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for methods in schema.get("paths", {}).values():
            for operation in methods.values():
                if not isinstance(operation, dict) or "Transactions" not in operation.get("tags", []):
                    continue
                responses = operation.setdefault("responses", {})
                # FastAPI's default 422 is never returned; validation errors are 400
                responses.pop("422", None)
                for status_code, description in _SHARED_RESPONSES.items():
                    responses.setdefault(
                        status_code,
                        {
                            "description": description,
                            "content": {"application/json": {"schema": error_ref}},
                        },
                    )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
