"""
HTTP API: routes, dependencies, middleware and request/response models.
"""
