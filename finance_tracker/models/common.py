import math
from typing import Any, Optional, List, Dict

from pydantic import BaseModel


# ===== RESPONSE ENVELOPES =====

def to_payload(value: Any) -> Any:
    """Dump pydantic models to plain python so amounts leave as JSON numbers."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, list):
        return [to_payload(item) for item in value]
    if isinstance(value, dict):
        return {key: to_payload(item) for key, item in value.items()}
    return value


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = to_payload(data)
    return body


def paginated_response(key: str, items: List[Any], total: int, page: int, limit: int) -> Dict[str, Any]:
    """List envelope: ``count`` is the size of this page, ``pages`` is ceil(total/limit)."""
    return {
        "success": True,
        "count": len(items),
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
        "data": {key: to_payload(items)},
    }


def error_response(message: str, errors: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body
