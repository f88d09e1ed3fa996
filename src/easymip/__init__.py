"""
easymip: a small, easy to use MILP modeling layer backed by OR-Tools.

Public API:
- MIPSolver: owns one engine context; creates variables and constraints
- Variable, Constraint, Solution: handles derived from a MIPSolver
- MIP: status, kind, sense and emphasis constants
- the exception taxonomy from easymip.errors

Notes:
- Solving is delegated to OR-Tools (SCIP by default); counting feasible
  solutions uses the CP-SAT solver.
"""

from __future__ import annotations

import logging

# Runtime version discovery with graceful fallback
# if package metadata is missing
from importlib.metadata import version, PackageNotFoundError

__version__: str
try:
    # Package name should match the installed distribution
    __version__ = version("easymip")
except PackageNotFoundError:
    __version__ = "0.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())


# Re-export primary symbols from the internal implementation modules
from .errors import (  # noqa: E402
    AlreadyCommitted,
    CrossSolverHandle,
    EasyMipError,
    EngineFailure,
    InvalidBounds,
    NoSolution,
    SolverClosed,
)
from .milp import MIP, Constraint, MIPSolver, Solution, Variable  # noqa: E402


__all__ = [
    "MIPSolver",
    "Variable",
    "Constraint",
    "Solution",
    "MIP",
    "EasyMipError",
    "InvalidBounds",
    "AlreadyCommitted",
    "CrossSolverHandle",
    "NoSolution",
    "EngineFailure",
    "SolverClosed",
    "__version__",
]
