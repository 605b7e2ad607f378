"""Infrastructure Layer: database, repositories, email clients, logging.

Invariants:
    - All external calls wrapped with retry/timeout/error mapping
    - SQLAlchemy and httpx errors never escape as raw library exceptions
"""
