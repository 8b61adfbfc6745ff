"""Exceptions and warnings raised by :py:mod:`cluster_profiles`."""


class ProfileError(Exception):
    """Base class for errors raised while building or reading cluster profiles."""


class ProfileNotBuiltError(ProfileError):
    """Raised when a spline is read from a context on which it was never built."""

    def __init__(self, kind: str, context=None):
        self.kind = kind
        self.context = context
        super().__init__(
            f"The '{kind}' profile has not been built on {context}. Call setup_profiles() for the cluster first."
        )


class ProfileOrderError(ProfileError):
    """Raised when a setup stage runs before the stage it depends on."""


class QuadratureAccuracyWarning(UserWarning):
    """Adaptive quadrature stopped before reaching the requested tolerance.

    The achieved estimate is still returned; the warning carries the achieved error.
    """
