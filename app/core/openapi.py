"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- Bearer token security scheme with per-path overrides

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

# Paths reachable without a bearer token.
PUBLIC_PATH_SUFFIXES = ("/health", "/auth/login", "/auth/register", "/notion/callback")


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and security.

    - Injects components.securitySchemes for bearer auth (``Authorization``)
    - Marks all operations as requiring a token by default, then exempts
      public endpoints by setting ``security: []``
    - Adds tags metadata if not present
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        # Components / security scheme
        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "BearerAuth",
            {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Token returned by /api/auth/login or /api/auth/register.",
            },
        )

        # Global security requirement (applies to all operations)
        schema.setdefault("security", [{"BearerAuth": []}])

        # Tags metadata
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {"name": "Auth", "description": "Registration, login and account settings."},
            {"name": "Strategies", "description": "Strategy document analysis and storage."},
            {"name": "Analysis", "description": "Chart analysis, chat and chart import."},
            {"name": "Conversations", "description": "Stored chat transcripts."},
            {"name": "Notion", "description": "Notion OAuth and page import."},
            {"name": "Health", "description": "Liveness and readiness checks."},
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        # Exempt public endpoints from auth by setting security: []
        paths = schema.get("paths", {})
        for path, methods in paths.items():
            if path.endswith(PUBLIC_PATH_SUFFIXES):
                for method_obj in methods.values():
                    if isinstance(method_obj, dict):
                        method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
