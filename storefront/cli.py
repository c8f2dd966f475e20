"""
Flask CLI commands.

``flask --app app seed-defaults`` creates the default administrator account and a
sample product when they do not exist yet. Running it repeatedly is harmless.
"""

import click
import structlog
from flask import Flask
from flask.cli import with_appcontext

from storefront.business.services import ProductService, UserService
from storefront.data.mongodb import ResourceType, get_mongodb_manager


logger = structlog.get_logger(__name__)

DEFAULT_ADMIN = {
    'name': 'Administrator',
    'email': 'admin@example.com',
    'password': '123456',
}

DEFAULT_PRODUCT = {
    'sku': 'SKU000001',
    'product_name': 'Sample Product',
    'brand': 'Storefront',
    'category': 'General',
    'price': 9.99,
}


def seed_defaults(admin_password: str = DEFAULT_ADMIN['password']) -> dict:
    """
    Insert the default administrator and product when missing.

    Returns:
        Mapping of resource name to the created id, or None when it already existed
    """
    manager = get_mongodb_manager()
    created = {'user': None, 'product': None}

    if manager.fetch_by_field(ResourceType.USERS, 'email', DEFAULT_ADMIN['email']) is None:
        created['user'] = UserService(manager).create({**DEFAULT_ADMIN, 'password': admin_password})

    if manager.fetch_by_field(ResourceType.PRODUCTS, 'sku', DEFAULT_PRODUCT['sku']) is None:
        created['product'] = ProductService(manager).create(DEFAULT_PRODUCT)

    logger.info("Default records seeded", created=created)
    return created


@click.command('seed-defaults')
@click.option('--admin-password', default=DEFAULT_ADMIN['password'], show_default=True,
              help='Password of the default administrator account.')
@with_appcontext
def seed_defaults_command(admin_password: str) -> None:
    """Create the default administrator and sample product."""
    created = seed_defaults(admin_password)
    for resource, record_id in created.items():
        if record_id:
            click.echo(f"Created {resource} {record_id}")
        else:
            click.echo(f"Default {resource} already present")


def register_cli_commands(app: Flask) -> None:
    app.cli.add_command(seed_defaults_command)


__all__ = ['seed_defaults', 'seed_defaults_command', 'register_cli_commands']
