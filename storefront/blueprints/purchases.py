"""
Purchases Blueprint

Purchase entries hold the buyer's name, email and address plus an ordered list of
product references. The detail endpoint resolves those references to products.
"""

import structlog
from flask import Blueprint, request

from storefront.blueprints.responses import format_api_response, load_body
from storefront.business.exceptions import OperationFailedError, ResourceNotFoundError
from storefront.business.query import PURCHASES_QUERY
from storefront.business.services import ProductService, PurchaseService
from storefront.business.validators import PurchaseItemSchema, PurchaseSchema, load_query_request


logger = structlog.get_logger(__name__)

purchases_bp = Blueprint('purchases', __name__, url_prefix='/api/purchases')


def _purchase_not_found(purchase_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError("Purchase not found", error_code="PURCHASE_NOT_FOUND",
                                 resource_type='purchase', resource_id=purchase_id)


def _load_item_reference(purchase_id: str, service: PurchaseService) -> str:
    product_id = load_body(PurchaseItemSchema())['product_id']
    if not service.exists(purchase_id):
        raise _purchase_not_found(purchase_id)
    if not ProductService(service.db_manager).exists(product_id):
        raise ResourceNotFoundError("Product not found", error_code="PRODUCT_NOT_FOUND",
                                    resource_type='product', resource_id=product_id)
    return product_id


@purchases_bp.route('', methods=['GET'])
def list_purchases():
    result = PurchaseService().list(load_query_request(request.args, PURCHASES_QUERY))
    return format_api_response(data=result.model_dump(), message="Purchases retrieved")


@purchases_bp.route('', methods=['POST'])
def create_purchase():
    data = load_body(PurchaseSchema())
    service = PurchaseService()
    purchase_id = service.create(data)
    if not purchase_id:
        raise OperationFailedError("Failed to create purchase")
    return format_api_response(data=service.get_detail(purchase_id), message="Purchase created",
                               status_code=201)


@purchases_bp.route('/<purchase_id>', methods=['GET'])
def get_purchase(purchase_id: str):
    purchase = PurchaseService().get_detail(purchase_id)
    if purchase is None:
        raise _purchase_not_found(purchase_id)
    return format_api_response(data=purchase, message="Purchase retrieved")


@purchases_bp.route('/<purchase_id>/items', methods=['PUT'])
def add_purchase_item(purchase_id: str):
    """
    Add a product to a purchase.

    Request Body:
        ``{"product_id": "<24 hex chars>"}``
    """
    service = PurchaseService()
    product_id = _load_item_reference(purchase_id, service)
    if not service.add_item(purchase_id, product_id):
        raise OperationFailedError("Failed to add product to purchase")
    logger.info("Purchase item added", purchase_id=purchase_id, product_id=product_id)
    return format_api_response(data=service.get_detail(purchase_id), message="Product added to purchase")


@purchases_bp.route('/<purchase_id>/items', methods=['DELETE'])
def remove_purchase_item(purchase_id: str):
    service = PurchaseService()
    product_id = load_body(PurchaseItemSchema())['product_id']
    if not service.exists(purchase_id):
        raise _purchase_not_found(purchase_id)
    if not service.remove_item(purchase_id, product_id):
        raise OperationFailedError("Failed to remove product from purchase")
    return format_api_response(data=service.get_detail(purchase_id), message="Product removed from purchase")
