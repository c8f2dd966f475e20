"""
Flask Blueprints Package

Central blueprint registration for the application factory.

Blueprint Organization:
- authentication (/api/authentication/*): login with per-account lockout
- users (/api/users/*): user accounts
- products (/api/products/*): product catalog
- purchases (/api/purchases/*): purchases and their items
- health (/health/*, /metrics): probes and Prometheus metrics
"""

from typing import List

import structlog
from flask import Flask

from storefront.blueprints.authentication import authentication_bp
from storefront.blueprints.health import health_bp
from storefront.blueprints.products import products_bp
from storefront.blueprints.purchases import purchases_bp
from storefront.blueprints.users import users_bp


logger = structlog.get_logger(__name__)

BLUEPRINTS = (
    health_bp,
    authentication_bp,
    users_bp,
    products_bp,
    purchases_bp,
)


def register_all_blueprints(app: Flask) -> List[str]:
    """
    Register every application blueprint.

    Args:
        app: Flask application instance

    Returns:
        Names of the registered blueprints
    """
    registered = []
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)
        registered.append(blueprint.name)

    logger.info(
        "Blueprints registered",
        blueprints=registered,
        route_count=len(list(app.url_map.iter_rules()))
    )
    return registered


__all__ = [
    'register_all_blueprints',
    'authentication_bp',
    'health_bp',
    'products_bp',
    'purchases_bp',
    'users_bp',
]
