class BotError(Exception):
    """Base class for engine errors."""


class BrokerError(BotError):
    """Order placement or status query failed at the broker."""


class AuthRequired(BrokerError):
    """The broker session lost its authorization; re-authorize and retry."""


class InvariantViolation(BotError):
    """An operation was attempted in a state that forbids it."""
