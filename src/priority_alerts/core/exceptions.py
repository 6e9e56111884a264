"""
Core Exceptions
================

Custom exceptions for the alert engine following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the boundaries (HTTP layer, batch runner, scripts).
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class PersistenceException(RepositoryException):
    """
    Raised when the alert store fails to read or write.

    Surfaced to callers as a server-side failure; an alert that could
    not be stored is never reported as created.
    """

    def __init__(
        self,
        operation: str,
        alert_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.operation = operation
        self.alert_id = alert_id
        message = f"Alert store {operation} failed"
        if alert_id:
            message += f" for alert '{alert_id}'"
        super().__init__(message, details or {"operation": operation, "alert_id": alert_id})


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class BroadcastException(ExternalServiceException):
    """Exception for realtime broadcaster failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Broadcaster", message, details)
