"""
Triage Module
=============

Bounded context for scoring and classifying incoming incident items.

Structure:
- domain/: Items, score results, scoring tables and alert rules
- application/: Classifier bridge and rule matcher
- infrastructure/: TTL cache, LLM classifier and YAML rule loader
"""
