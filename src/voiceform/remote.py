"""Shared helpers for the JSON endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional


def auth_headers(api_key: Optional[str]) -> Dict[str, str]:
    if not api_key:
        return {}
    return {"Authorization": f"Bearer {api_key}"}


def json_body(response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def error_reason(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error.strip():
            return error.strip()
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None
