from typing import Optional


class ConfigurationError(ValueError):
    """Raised when a construct's configuration cannot be compiled."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.reason = message
        self.field = field
        if field:
            message = f"Invalid configuration in '{field}': {message}"
        super().__init__(message)

    def within(self, prefix: str) -> "ConfigurationError":
        """The same error, with its field located under ``prefix``."""
        field = f"{prefix}.{self.field}" if self.field else prefix
        return ConfigurationError(self.reason, field)
