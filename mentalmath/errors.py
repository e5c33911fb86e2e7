from __future__ import annotations

"""Exception types raised by the mental-math core."""


class MentalMathError(Exception):
    """Base class for programmer-facing errors in the core."""


class EmptyOperatorPool(MentalMathError, ValueError):
    """Raised when a problem is requested with no operator enabled."""


class SessionError(MentalMathError, RuntimeError):
    """Raised when a session operation does not apply to the session kind."""
