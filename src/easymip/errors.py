"""
Exceptions raised by easymip.

Contract violations (bad bounds, reused builders, foreign handles) are
raised as soon as they are detected. An infeasible model is *not* an
error: it is reported through the Solution status.
"""


class EasyMipError(Exception):
    """
    Base class for every error raised by this package.
    """
    pass


class InvalidBounds(EasyMipError, ValueError):
    """A lower bound greater than its upper bound."""
    pass


class AlreadyCommitted(EasyMipError):
    """A Constraint or Solution was modified after commit()."""
    pass


class CrossSolverHandle(EasyMipError):
    """A Variable created by one solver was used with another."""
    pass


class NoSolution(EasyMipError):
    """The solution has no incumbent to read values from."""
    pass


class EngineFailure(EasyMipError):
    """
    The underlying engine failed to start or aborted. The engine state may
    be inconsistent afterwards, so this is not retried.
    """
    pass


class SolverClosed(EasyMipError):
    """The owning solver was closed and its handles are no longer valid."""
    pass
