from fastapi import HTTPException, status


class PushError(Exception):
    """Base class for push fan-out errors."""


class InvalidPayloadError(PushError, ValueError):
    """Notification title/body missing or empty. Raised before anything is sent."""


class NoRecipientsError(PushError):
    """Every platform token list is empty."""

    def __init__(self, message: str = "No device tokens to send to"):
        super().__init__(message)


class TransportError(PushError):
    """A single provider call failed. Always contained to the token it was sent to."""

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class DispatchUnavailableError(PushError):
    """The platform transport cannot dispatch at all (e.g. not configured)."""


class AppException:
    """Class-based exception handlers for common HTTP status codes."""

    @staticmethod
    def raise_400(message: str = "Bad Request"):
        """Raise a 400 Bad Request exception."""
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    @staticmethod
    def raise_401(message: str = "Unauthorized"):
        """Raise a 401 Unauthorized exception."""
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)

    @staticmethod
    def raise_404(message: str = "Not Found"):
        """Raise a 404 Not Found exception."""
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)

    @staticmethod
    def raise_503(message: str = "Service Unavailable"):
        """Raise a 503 Service Unavailable exception."""
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)


raise_400 = AppException.raise_400
raise_401 = AppException.raise_401
raise_404 = AppException.raise_404
raise_503 = AppException.raise_503
