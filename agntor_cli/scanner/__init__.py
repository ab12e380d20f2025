"""agntor-cli detection back end.

Backs the production trust adapter: injection guard and redaction (regex
engine over google-re2 pattern sets), SSRF target classification, and
settlement risk scoring.
"""
