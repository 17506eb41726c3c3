"""
Client directory module.

CRUD over the ``/clientes/v1`` endpoints plus form validation and the
name/search helpers used by the project and finance screens.
"""
