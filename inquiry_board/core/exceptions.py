"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
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


class ValidationException(ApplicationException):
    """Exception for validation errors."""


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
    """Exception for reasoning service failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Reasoning Service", message, details)


class CredentialVaultException(ApplicationException):
    """Exception for credential encryption problems."""


class InvalidTransitionException(DomainException):
    """Raised when a requested step change is not in the transition table."""

    def __init__(
        self,
        ticket_id: int,
        current_step: str,
        target_step: str,
        details: Optional[dict] = None
    ):
        self.ticket_id = ticket_id
        self.current_step = current_step
        self.target_step = target_step
        super().__init__(
            f"Transition {current_step} -> {target_step} is not permitted for ticket {ticket_id}",
            details or {
                "ticket_id": ticket_id,
                "current_step": current_step,
                "target_step": target_step,
            }
        )
