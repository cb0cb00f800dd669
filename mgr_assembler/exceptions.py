"""Custom exceptions for the manager assembler."""


class AssemblerError(Exception):
    """Base exception for all assembler errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ConfigurationError(AssemblerError):
    """Exception raised for malformed cluster or network configuration."""

    pass


class OwnershipError(AssemblerError):
    """Exception raised when a descriptor's owner reference cannot be resolved."""

    pass


class ValidationError(AssemblerError):
    """Exception raised for validation errors."""

    pass
