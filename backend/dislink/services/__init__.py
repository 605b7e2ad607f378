"""Service Layer: orchestrates repositories and mailers around the pure core.

Invariants:
    - Services receive their collaborators explicitly (constructor injection)
    - Expected failures are returned as results; only outages raise
"""
