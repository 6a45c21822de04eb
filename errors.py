# errors.py


class StoreError(Exception):
    """Raised by a spatial store when the backing storage fails."""


class NotFoundError(StoreError):
    """The requested record does not exist."""


class ProximityError(Exception):
    """Base for failures the proximity service reports back to a user.

    ``user_message`` is always safe to show; internal detail stays in the logs.
    """

    user_message = "Something went wrong"

    def __init__(self, user_message: str = None):
        if user_message is not None:
            self.user_message = user_message
        super().__init__(self.user_message)


class InvalidInputError(ProximityError):
    user_message = "Invalid input"


class LocationRequiredError(ProximityError):
    user_message = "Set position first"


class ServiceFailureError(ProximityError):
    user_message = "Something went wrong, please try again later"
