"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Triage and Alerts).

Architecture Pattern: Modular Monolith
- Each module (triage, alerts) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add scoring or lifecycle logic to the shared kernel.
"""
