"""
Authentication Blueprint

Login endpoint guarded twice: Flask-Limiter throttles requests per client address
and the login lockout guard throttles failed attempts per account.
"""

import structlog
from flask import Blueprint, current_app

from storefront.blueprints.responses import format_api_response, load_body
from storefront.business.services import create_authentication_service
from storefront.business.validators import LoginSchema
from storefront.extensions import limiter


logger = structlog.get_logger(__name__)

authentication_bp = Blueprint('authentication', __name__, url_prefix='/api/authentication')


def _login_rate_limit() -> str:
    return current_app.config.get('LOGIN_RATE_LIMIT', '20 per minute')


@authentication_bp.route('/login', methods=['POST'])
@limiter.limit(_login_rate_limit)
def login():
    """
    Authenticate with email and password.

    Request Body:
        ``{"email": ..., "password": ...}``

    Returns:
        200 with ``{user_id, email, name}``; 401 for wrong credentials,
        403 while the account is locked
    """
    credentials = load_body(LoginSchema())
    service = create_authentication_service(current_app.config)
    identity = service.login(credentials['email'], credentials['password'])

    logger.info("Login succeeded", user_id=identity['user_id'])
    return format_api_response(data=identity, message="Login successful")
