"""agntor-cli models package.

Defines the shared data contracts used across the orchestrator, adapters and
renderer:

  - scan.py    — Classification, Finding, ThreatReport and adapter result types
  - ticket.py  — AuditLevel, TicketConstraints, AuditTicketClaims,
                 TicketValidationOutcome
"""
