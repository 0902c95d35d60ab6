# exceptions.py
"""Error taxonomy for the tender evaluation engine."""


class TenderEngineError(Exception):
    """Base class for all engine errors"""


class InvalidInput(TenderEngineError, ValueError):
    """Malformed numeric input: negative price, out-of-range score, etc."""


class IllegalTransition(TenderEngineError):
    """A tender or bid state machine violation"""


class EditNotPermitted(IllegalTransition):
    """Line items cannot be edited (not owner, past deadline, or read-only)"""


class InsufficientSelection(TenderEngineError, ValueError):
    """A comparison was requested with fewer than two bids"""


class NotFound(TenderEngineError, LookupError):
    """Raised by stores when an entity does not exist"""


class PersistenceError(TenderEngineError):
    """Raised by stores when a save fails"""
