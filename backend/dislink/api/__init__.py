"""API Layer: FastAPI routes, dependencies, and error handlers.

Design Decisions:
    - Thin routes delegate to services
"""
