"""
Alerts Infrastructure Layer
===========================

Technical implementations for the alerts context:
- SQLAlchemy and in-memory alert stores
- HTTP and logging broadcasters
"""
