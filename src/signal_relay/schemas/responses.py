"""
Response Schema Definitions

Contains functions for creating standardized response structures.
"""

from typing import Dict, Any, Optional


def create_error_response(
    error_message: str,
    error_code: str,
    request_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create an error response.

    Args:
        error_message: Error message text
        error_code: Machine readable error code
        request_type: Type of the request that failed, if known

    Returns:
        dict: Error response
    """
    data = {
        "success": False,
        "error_code": error_code,
        "message": error_message,
    }
    if request_type:
        data["request_type"] = request_type
    return {"type": "error", "data": data}
