"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from priority_alerts.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    PersistenceException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    BroadcastException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "PersistenceException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "BroadcastException",
]
