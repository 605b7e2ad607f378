"""Core Layer: pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are deterministic given their inputs (token generation
      is the one exception and takes its entropy source from `secrets`)

Design Decisions:
    - Functional core separated from imperative shell: services orchestrate
      repository IO around these functions
"""
