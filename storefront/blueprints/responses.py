"""Response helpers shared by the API blueprints."""

from typing import Any, Dict

from flask import jsonify, request

from storefront.business.validators import validate_payload


def format_api_response(data: Any = None, message: str = "Operation completed successfully",
                        status_code: int = 200):
    """Format standardized API response."""
    body: Dict[str, Any] = {
        'success': status_code < 400,
        'message': message,
        'data': data,
    }
    return jsonify(body), status_code


def load_body(schema) -> Dict[str, Any]:
    """Validate the JSON body of the current request with ``schema``."""
    return validate_payload(schema, request.get_json(silent=True))
