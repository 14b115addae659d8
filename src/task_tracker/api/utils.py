from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence


# PUBLIC_INTERFACE
def error_body(error: str, details: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
    """
    Build the standard error body returned by every failing endpoint.

    Args:
        error: Human readable error message.
        details: Optional list of field-level issues.

    Returns:
        Dict with key 'error' and, when details are given, 'details'.
    """
    body: Dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = list(details)
    return body


# PUBLIC_INTERFACE
def validation_details(errors: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Reduce pydantic/FastAPI error entries to JSON-safe field-level issues.

    The raw entries may carry exception objects in 'ctx', so only loc/msg/type are kept.
    """
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in errors
    ]
