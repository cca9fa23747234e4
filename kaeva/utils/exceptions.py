"""Kaeva Exception Classes.

This module defines the exception hierarchy used across the fact-check
service so that the API, the CLI and the pipeline report errors the same way.
"""

from typing import Any


class KaevaError(Exception):
    """Base exception class for all Kaeva errors."""

    def __init__(
        self,
        message: str = "An error occurred in the Kaeva fact-check service",
        code: str = "KAEVA_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize the base Kaeva error.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            status_code: HTTP status code to use in API responses
            details: Additional error context and metadata
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a standardized dictionary format."""
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


# Input/Validation Errors


class ValidationError(KaevaError):
    """Exception raised for request validation errors."""

    def __init__(
        self,
        message: str = "Invalid data format or values",
        details: dict[str, Any] | None = None,
        field: str | None = None,
    ):
        """Initialize a validation error.

        Args:
            message: Description of the validation error
            details: Additional error details
            field: Name of the specific field that failed validation
        """
        code = "VALIDATION_ERROR"
        if field:
            details = details or {}
            details["field"] = field
            code = f"VALIDATION_ERROR_{field.upper()}"

        super().__init__(message=message, code=code, status_code=400, details=details)


class NotFoundError(KaevaError):
    """Exception raised when an analysis job id is unknown."""

    def __init__(self, message: str = "Analysis not found", job_id: str | None = None):
        details = {"analysis_id": job_id} if job_id else None
        super().__init__(message=message, code="NOT_FOUND", status_code=404, details=details)


class ConfigurationError(KaevaError):
    """Exception raised when configuration or a static asset is invalid."""

    def __init__(
        self,
        message: str = "Invalid configuration",
        setting: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize a configuration error.

        Args:
            message: Description of the configuration problem
            setting: Name of the offending setting or asset
            details: Additional error details
        """
        details = details or {}
        if setting:
            details["setting"] = setting

        super().__init__(message=message, code="CONFIGURATION_ERROR", status_code=500, details=details)


# Pipeline Errors


class PipelineError(KaevaError):
    """Base exception for errors that abort a fact-check job."""

    def __init__(
        self,
        message: str = "Error in fact-check pipeline",
        code: str = "PIPELINE_ERROR",
        stage: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize a pipeline error.

        Args:
            message: Description of the pipeline error
            code: Error code for the specific pipeline error
            stage: Pipeline stage where the error occurred
            details: Additional error details
        """
        details = details or {}
        if stage:
            details["pipeline_stage"] = stage

        super().__init__(message=message, code=code, status_code=500, details=details)


class CredentialError(PipelineError):
    """Exception raised when the service-account token exchange fails."""

    def __init__(
        self,
        message: str = "Credential exchange failed",
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize a credential error.

        Args:
            message: Description of the failure
            status: HTTP status returned by the token endpoint, if any
            details: Additional error details
        """
        details = details or {}
        if status is not None:
            details["status"] = status

        super().__init__(
            message=message, code="CREDENTIAL_ERROR", stage="credential_exchange", details=details
        )


# Resource/Service Errors


class ExternalServiceError(KaevaError):
    """Exception raised when an external service fails or is unavailable."""

    def __init__(
        self,
        message: str = "External service error",
        service_name: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """Initialize an external service error.

        Args:
            message: Description of the external service error
            service_name: Name of the external service
            details: Additional error details
        """
        details = details or {}
        if service_name:
            details["service_name"] = service_name

        super().__init__(
            message=message, code="EXTERNAL_SERVICE_ERROR", status_code=503, details=details
        )


__all__ = [
    "ConfigurationError",
    "CredentialError",
    "ExternalServiceError",
    "KaevaError",
    "NotFoundError",
    "PipelineError",
    "ValidationError",
]
