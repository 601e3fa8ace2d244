"""
Error taxonomy for the goal tracker stores

Every store call either returns a domain object or raises one of these.
Only StoreUnavailableError is safe to retry as-is.
"""


class GoalTrackerError(Exception):
    """Base exception for goal tracker storage operations"""
    pass


class ValidationError(GoalTrackerError):
    """Raised when input is missing or malformed"""
    pass


class NotFoundError(GoalTrackerError):
    """Raised when a referenced entity does not exist"""
    pass


class ConflictError(GoalTrackerError):
    """Raised when an identity tuple already has a row"""
    pass


class DuplicateResourceError(ConflictError):
    """Raised when a user with the same email already exists"""
    pass


class StoreUnavailableError(GoalTrackerError):
    """Raised when DynamoDB fails transiently (throttling, network, missing table)"""
    pass


class ConditionFailedError(GoalTrackerError):
    """Raised by the table client when a ConditionExpression is not met"""
    pass
