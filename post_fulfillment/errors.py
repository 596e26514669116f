"""Exceptions raised by the post fulfillment package."""


class FulfillmentError(Exception):
    """Base class for all post fulfillment errors."""


class ConfigurationError(FulfillmentError, ValueError):
    """Credentials or settings are missing or malformed."""


class TransportError(FulfillmentError):
    """A carrier call failed at the network or protocol level."""


class CarrierError(TransportError):
    """The carrier answered with an error body."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        message = super().__str__()
        if self.status is not None:
            return f"{message} (status {self.status})"
        return message
