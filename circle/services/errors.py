class ServiceError(Exception):
    """Base service exception."""


class NotFoundError(ServiceError):
    """Raised when an identifier does not resolve."""


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""


class PostNotFoundError(NotFoundError):
    """Raised when a post is not found."""


class CommentNotFoundError(NotFoundError):
    """Raised when a comment id does not match any comment of the post."""


class ForbiddenError(ServiceError):
    """Raised when the requester is neither the owner nor an admin."""


class SelfFollowError(ForbiddenError):
    """Raised when a user tries to follow or unfollow itself."""


class ConflictError(ServiceError):
    """Raised when the requested state already holds (or cannot hold)."""


class DuplicateUsernameError(ConflictError):
    """Raised when a username is already taken."""


class AlreadyFollowingError(ConflictError):
    """Raised when the follow edge already exists."""


class NotFollowingError(ConflictError):
    """Raised when the follow edge does not exist."""


class InvalidCredentialsError(ServiceError):
    """Raised when a password does not match the stored hash."""


class InvalidMediaError(ServiceError):
    """Raised for uploads that are not images."""
