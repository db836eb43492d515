from __future__ import annotations


class TransportError(ValueError):
    """Base class for booth errors that are reported back to the traveler."""

    user_message: str = "Something went wrong."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)


class NoSelector(TransportError):
    user_message = "Press which button?"


class UnknownDestination(TransportError):
    user_message = "There is no such button."


class ProvisionFailure(TransportError):
    """Destination location could not be activated. Retrying later may succeed."""

    user_message = "The domain seems to be out of order."


class NotInsideEndpoint(TransportError):
    user_message = "You are not inside a transporter booth."
