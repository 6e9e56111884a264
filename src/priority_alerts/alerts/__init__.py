"""
Alerts Module
=============

Bounded context for alert creation, escalation and notification.

Structure:
- domain/: Alert entity and AlertFactory
- application/: Lifecycle manager and dispatch facade
- infrastructure/: Stores (in-memory, SQLAlchemy) and broadcasters
"""
