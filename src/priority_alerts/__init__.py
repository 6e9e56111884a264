"""
Priority Alerts
===============

Priority alert and triage engine for disaster response feeds.

Modules:
- Triage: score, classify and match incoming posts and reports
- Alerts: create, escalate, acknowledge and resolve alerts
"""

__version__ = "1.0.0"
