"""
Error types for the stats buffer.
"""

from typing import Dict, Any, Optional


class StatsBufferError(Exception):
    """Base exception for the stats buffer."""
    
    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(StatsBufferError):
    """Invalid buffer configuration."""
    
    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ValidationError(StatsBufferError):
    """Malformed metric update."""
    
    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class TransportError(StatsBufferError):
    """A send to the metrics transport failed."""
    
    def __init__(self, transport: str, message: str = "Transport error", details: Optional[Dict[str, Any]] = None):
        super().__init__("TRANSPORT_ERROR", f"{transport}: {message}", details)


class UnknownMetricError(StatsBufferError, KeyError):
    """Lookup of a metric identity that is not in the ledger."""
    
    def __init__(self, key: str):
        super().__init__("UNKNOWN_METRIC", f"Unknown metric: {key}", {"key": key})
    
    def __str__(self) -> str:
        return self.message
