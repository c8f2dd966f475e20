"""
Products Blueprint

Catalog endpoints. Product names and SKUs are unique across the catalog.
"""

import structlog
from flask import Blueprint, request

from storefront.blueprints.responses import format_api_response, load_body
from storefront.business.exceptions import OperationFailedError, ResourceNotFoundError
from storefront.business.query import PRODUCTS_QUERY
from storefront.business.services import ProductService
from storefront.business.validators import ProductSchema, load_query_request


logger = structlog.get_logger(__name__)

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


def _product_not_found(product_id: str) -> ResourceNotFoundError:
    return ResourceNotFoundError("Product not found", error_code="PRODUCT_NOT_FOUND",
                                 resource_type='product', resource_id=product_id)


@products_bp.route('', methods=['GET'])
def list_products():
    result = ProductService().list(load_query_request(request.args, PRODUCTS_QUERY))
    return format_api_response(data=result.model_dump(), message="Products retrieved")


@products_bp.route('', methods=['POST'])
def create_product():
    data = load_body(ProductSchema())
    service = ProductService()
    product_id = service.create(data)
    if not product_id:
        raise OperationFailedError("Failed to create product")
    logger.info("Product created", product_id=product_id)
    return format_api_response(data=service.get(product_id), message="Product created", status_code=201)


@products_bp.route('/<product_id>', methods=['GET'])
def get_product(product_id: str):
    product = ProductService().get(product_id)
    if product is None:
        raise _product_not_found(product_id)
    return format_api_response(data=product, message="Product retrieved")


@products_bp.route('/sku/<sku>', methods=['GET'])
def get_product_by_sku(sku: str):
    product = ProductService().get_by_sku(sku)
    if product is None:
        raise ResourceNotFoundError("Product not found", error_code="PRODUCT_NOT_FOUND",
                                    resource_type='product', context={'sku': sku})
    return format_api_response(data=product, message="Product retrieved")


@products_bp.route('/<product_id>', methods=['PUT'])
def update_product(product_id: str):
    data = load_body(ProductSchema())
    service = ProductService()
    if not service.exists(product_id):
        raise _product_not_found(product_id)
    if not service.update(product_id, data):
        raise OperationFailedError("Failed to update product")
    return format_api_response(data=service.get(product_id), message="Product updated")


@products_bp.route('/<product_id>', methods=['DELETE'])
def delete_product(product_id: str):
    service = ProductService()
    if not service.exists(product_id):
        raise _product_not_found(product_id)
    if not service.delete(product_id):
        raise OperationFailedError("Failed to delete product")
    return format_api_response(message="Product deleted")
