"""Audit ticket issuance and inspection.

  - issuer.py     — TicketIssuer: JWT signing, structural decode, validation
  - lifecycle.py  — TicketLifecycle: claims assembly and command composition
"""
