"""
Custom exception classes for the CRTP link client.

Only resource acquisition failures are raised to callers of the link
session; steady-state I/O problems are logged and degrade to "no effect
this cycle".
"""


class CRTPLinkException(Exception):
    """Base exception for all CRTP link custom exceptions."""

    pass


class BindFailureError(CRTPLinkException):
    """Exception raised when the UDP socket cannot bind its local port."""

    pass


class SendFailureError(CRTPLinkException):
    """Exception raised when a caller requires an outbound frame to be sent."""

    pass


class LinkNotOpenError(CRTPLinkException):
    """Exception raised when an operation needs an open link session."""

    pass


class ConfigurationError(CRTPLinkException):
    """Exception raised for configuration errors."""

    pass

