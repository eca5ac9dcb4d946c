class NotificationError(Exception):
    """Base class for notification domain errors."""


class ValidationError(NotificationError):
    """Bad or missing input fields (e.g. an unparsable ``sendAt``)."""


class NotFoundError(NotificationError):
    """Unknown notification id."""


class AuthorizationError(NotificationError):
    """Requester is not the notification's recipient."""


class DeliveryError(NotificationError):
    """The mail-sending collaborator failed to deliver a message."""
