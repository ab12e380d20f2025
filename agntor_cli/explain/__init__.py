"""Advisory explanations from an external reasoning tool.

  - engine.py   — Explainer protocol, ExplanationEngine (subprocess), NullExplainer
  - prompts.py  — prompt templates per check
  - render.py   — output sanitization and markdown-to-terminal rendering
"""
