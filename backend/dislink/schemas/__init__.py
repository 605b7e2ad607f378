"""Pydantic Schemas: request/response contracts for API endpoints.

Invariants:
    - Schemas validate shape at the system boundary; business validation
      (email format, message length) lives in core/ so it can be reported
      as structured results instead of 400 validation errors
"""
