"""Simple wrappers for the failure states the router can put us in"""


class ConnectBoxError(Exception):
    """Base for anything the router client raises on purpose."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message, status_code, payload)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def __str__(self):
        return self.message


class ProtocolViolationError(ConnectBoxError):
    """Exception for responses that don't look like what the router normally sends.

    Bad status, missing session cookie, undecodable payload or an unexpected login
    reply.
    """


class AuthenticationRejectedError(ConnectBoxError):
    """Exception for the router explicitly refusing the password."""


class ConfigError(Exception):
    """Exception for bad/missing env-var configuration."""
