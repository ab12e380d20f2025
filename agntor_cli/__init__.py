"""agntor-cli — security scanner for AI agent systems.

Runs prompt-injection, secret redaction, SSRF and settlement-risk checks on
operator input, manages signed audit tickets, and optionally asks an external
reasoning tool to explain what it found.
"""

__version__ = "1.0.0"
