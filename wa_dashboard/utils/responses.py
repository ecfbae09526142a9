from typing import Any, Dict, Optional


def error_response(error: str, details: Optional[Any] = None) -> Dict[str, Any]:
    """Create an error response."""
    response = {
        "success": False,
        "error": error
    }
    if details:
        response["details"] = details
    return response
