"""Domain exceptions shared by the store, the generator and the HTTP layer."""


class ClosetError(Exception):
    """Base class for errors that carry a user-facing message."""


class PolicyViolationError(ClosetError):
    """A request was rejected before any state was written."""


class OutfitPolicyError(PolicyViolationError):
    """Raised when an outfit is confirmed with fewer than two resolved slots."""


class NothingToSyncError(PolicyViolationError):
    """Raised when a sync finds no guest items to upload."""


class NotAuthenticatedError(PolicyViolationError):
    """Raised for cloud-only operations while in guest mode."""


class ItemNotFoundError(ClosetError, KeyError):
    """Raised when an item id is not present in the store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "item not found"


class CloudConfigError(ClosetError, ValueError):
    """Raised when cloud credentials cannot be parsed."""


class CloudWriteError(ClosetError):
    """Raised when a cloud write fails; the caller may retry."""


class StoreNotReadyError(PolicyViolationError):
    """Raised for mutations attempted before the initial load completed."""


class AuthError(ClosetError):
    """Raised when sign-in or sign-up fails."""


__all__ = [
    "ClosetError",
    "PolicyViolationError",
    "OutfitPolicyError",
    "NothingToSyncError",
    "NotAuthenticatedError",
    "ItemNotFoundError",
    "CloudConfigError",
    "CloudWriteError",
    "StoreNotReadyError",
    "AuthError",
]
