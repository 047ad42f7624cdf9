"""
Custom exceptions for loudbatch

This module defines all custom exceptions used throughout the application
to provide clear error handling and debugging information.
"""


class LoudBatchError(Exception):
    """Base exception for all loudbatch errors"""

    def __init__(self, message: str, details: str = None, filepath: str = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.filepath = filepath

    def __str__(self):
        parts = [self.message]
        if self.filepath:
            parts.append(f"File: {self.filepath}")
        if self.details:
            parts.append(f"Details: {self.details}")
        return " | ".join(parts)


class ConfigurationError(LoudBatchError):
    """Raised when an operation cannot start because of missing configuration"""
    pass


class ToolNotFoundError(ConfigurationError):
    """Raised when a required external binary cannot be located"""

    def __init__(self, tool_name: str, details: str = None):
        super().__init__(f"{tool_name} not found", details)
        self.tool_name = tool_name


class ServiceError(LoudBatchError):
    """Raised when a service operation fails"""

    def __init__(self, service_name: str, message: str, details: str = None, filepath: str = None):
        super().__init__(message, details, filepath)
        self.service_name = service_name

    def __str__(self):
        return f"[{self.service_name}] {super().__str__()}"


class NormalizationError(ServiceError):
    """Raised when a normalization session fails"""

    def __init__(self, message: str, details: str = None, filepath: str = None):
        super().__init__("Normalization", message, details, filepath)


class ProcessLaunchError(NormalizationError):
    """Raised when the normalization process cannot be started"""
    pass
