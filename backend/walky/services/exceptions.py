"""
Service Exceptions

Domain errors raised by the service layer. Each carries the HTTP status the
REST layer maps it to; the socket layer logs them or turns them into an
`error` event.
"""


class WalkyError(Exception):
    """Base exception for service errors"""
    status_code = 500


# === InvalidArgument ===

class InvalidArgumentError(WalkyError):
    """Malformed or out-of-range input, rejected before any mutation"""
    status_code = 400


class InvalidCoordinatesError(InvalidArgumentError):
    pass


class InvalidRadiusError(InvalidArgumentError):
    pass


class InvalidDescriptorError(InvalidArgumentError):
    """Offer/answer descriptor is neither server-mediated nor a valid SDP"""
    pass


class SelfFriendError(InvalidArgumentError):
    pass


# === NotFound ===

class NotFoundError(WalkyError):
    status_code = 404


class UserNotFoundError(NotFoundError):
    pass


class CallNotFoundError(NotFoundError):
    """Unknown call, or the acting user is not allowed to touch it"""
    pass


class ChannelNotFoundError(NotFoundError):
    pass


class FriendRequestNotFoundError(NotFoundError):
    pass


# === Forbidden ===

class ForbiddenError(WalkyError):
    status_code = 403


class NotChannelParticipantError(ForbiddenError):
    pass


# === Conflict ===

class ConflictError(WalkyError):
    status_code = 409


class UsernameTakenError(ConflictError):
    pass


class AlreadyFriendsError(ConflictError):
    pass


class RequestAlreadySentError(ConflictError):
    pass


# === StoreUnavailable ===

class StoreUnavailableError(WalkyError):
    """The persistent store operation itself failed"""
    status_code = 500
