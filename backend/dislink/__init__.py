"""Dislink QR Connection Package: connection codes, public profiles, invitations.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
