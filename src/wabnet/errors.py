"""Error taxonomy shared by the backend and its clients."""


class OpportunityError(Exception):
    """Base class for all opportunity workflow failures."""


class ValidationError(OpportunityError):
    """A required field is missing or empty."""


class NotFoundError(OpportunityError):
    """The referenced opportunity does not exist."""


class UploadError(OpportunityError):
    """Writing an image blob to object storage failed."""


class PersistenceError(OpportunityError):
    """A database read or write failed."""


class TransportError(OpportunityError):
    """The backend could not be reached."""


class SubscriptionError(OpportunityError):
    """The change notification stream failed or disconnected."""
