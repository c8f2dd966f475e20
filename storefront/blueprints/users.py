"""
Users Blueprint

CRUD endpoints for user accounts plus password change. Password hashes and login
attempt counters never leave the service layer.
"""

import structlog
from flask import Blueprint, request

from storefront.blueprints.responses import format_api_response, load_body
from storefront.business.exceptions import OperationFailedError, ResourceNotFoundError
from storefront.business.query import USERS_QUERY
from storefront.business.services import UserService
from storefront.business.validators import (
    ChangePasswordSchema,
    CreateUserSchema,
    UpdateUserSchema,
    load_query_request,
)


logger = structlog.get_logger(__name__)

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


def _user_not_found(user_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError("User not found", error_code="USER_NOT_FOUND",
                                 resource_type='user', resource_id=user_id)


@users_bp.route('', methods=['GET'])
def list_users():
    """
    List users.

    Query Parameters:
        search, sortField, sortOrder, page_number, page_size
    """
    result = UserService().list(load_query_request(request.args, USERS_QUERY))
    return format_api_response(data=result.model_dump(), message="Users retrieved")


@users_bp.route('', methods=['POST'])
def create_user():
    data = load_body(CreateUserSchema())
    service = UserService()
    user_id = service.create(data)
    if not user_id:
        raise OperationFailedError("Failed to create user")
    return format_api_response(data=service.get(user_id), message="User created", status_code=201)


@users_bp.route('/<user_id>', methods=['GET'])
def get_user(user_id: str):
    user = UserService().get(user_id)
    if user is None:
        raise _user_not_found(user_id)
    return format_api_response(data=user, message="User retrieved")


@users_bp.route('/<user_id>', methods=['PUT'])
def update_user(user_id: str):
    data = load_body(UpdateUserSchema())
    service = UserService()
    if not service.exists(user_id):
        raise _user_not_found(user_id)
    if not service.update(user_id, data):
        raise OperationFailedError("Failed to update user")
    return format_api_response(data=service.get(user_id), message="User updated")


@users_bp.route('/<user_id>', methods=['DELETE'])
def delete_user(user_id: str):
    service = UserService()
    if not service.exists(user_id):
        raise _user_not_found(user_id)
    if not service.delete(user_id):
        raise OperationFailedError("Failed to delete user")
    logger.info("User deleted", user_id=user_id)
    return format_api_response(message="User deleted")


@users_bp.route('/<user_id>/change-password', methods=['POST'])
def change_password(user_id: str):
    """
    Change a user's password.

    Request Body:
        ``{"password_old": ..., "password_new": ..., "password_confirm": ...}``
    """
    data = load_body(ChangePasswordSchema())
    service = UserService()
    if not service.exists(user_id):
        raise _user_not_found(user_id)
    if not service.change_password(user_id, data['password_old'], data['password_new']):
        raise OperationFailedError("Failed to change password")
    return format_api_response(message="Password changed")
