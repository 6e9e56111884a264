"""
Triage Infrastructure Layer
===========================

Technical implementations for the triage context:
- In-process TTL cache for classifier answers
- LLM-backed urgency classifier
- YAML alert rule loader
"""
