"""Shared helpers for the REST routes."""

from fastapi import HTTPException

_STATUS_BY_CODE = {"not_found": 404, "exists": 409}


def raise_for_error(result):
    """Turn a handler's {"error": ...} dict into an HTTPException; else pass through."""
    if isinstance(result, dict) and "error" in result:
        status = _STATUS_BY_CODE.get(result.get("code"), 400)
        raise HTTPException(status_code=status, detail=result["error"])
    return result
