"""
Storefront backend: users, products and purchases over a JSON HTTP API backed by
MongoDB, with a shared search/sort/paginate list pipeline and a per-account login
lockout.
"""

__version__ = '1.0.0'
