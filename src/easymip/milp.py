"""
A small modeling layer over the Google OR-Tools MIP solvers.

A MIPSolver owns one engine context. Variables are registered in the
engine as soon as they are created, constraints are accumulated in a
builder and committed as one linear range row, and solve() hands back a
Solution snapshot of the engine's best incumbent.

    with MIPSolver() as solver:
        x = solver.integer_variable(0, 10, 1.0)
        row = solver.constraint()
        row.add_variable(x, 2)
        row.commit(4, 8)
        print(solver.solve().value(x))

To use this, you must have Google OR-Tools installed:
'pip install ortools'
"""

import itertools
import logging

import numpy as np

from ortools.linear_solver import linear_solver_pb2
from ortools.linear_solver import pywraplp

from . import enumeration, feasibility
from .errors import (
    AlreadyCommitted,
    CrossSolverHandle,
    EasyMipError,
    EngineFailure,
    InvalidBounds,
    NoSolution,
    SolverClosed,
)

logger = logging.getLogger(__name__)


class MIP:
    """
    Constants used across the package.
    """
    # Solution status
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    UNKNOWN = "unknown"

    # Variable kinds
    BINARY = "binary"
    INTEGER = "integer"

    # Senses
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"

    # Emphasis hints
    EMPHASIS_DEFAULT = "default"
    EMPHASIS_FEASIBILITY = "feasibility"
    EMPHASIS_OPTIMALITY = "optimality"

    # A default "infinity" value
    INFINITY = pywraplp.Solver.infinity()


_STATUS = {
    pywraplp.Solver.OPTIMAL: MIP.OPTIMAL,
    pywraplp.Solver.FEASIBLE: MIP.FEASIBLE,
    pywraplp.Solver.INFEASIBLE: MIP.INFEASIBLE,
}

_ENGINE_FAILURES = (pywraplp.Solver.ABNORMAL, pywraplp.Solver.MODEL_INVALID)

# SCIP parameter text for each emphasis hint. Other backends only honor
# the generic MPSolverParameters used for EMPHASIS_OPTIMALITY.
_SCIP_EMPHASIS = {
    MIP.EMPHASIS_DEFAULT: "",
    MIP.EMPHASIS_FEASIBILITY: (
        "separating/maxrounds = 0\nseparating/maxroundsroot = 0"
    ),
    MIP.EMPHASIS_OPTIMALITY: "limits/gap = 0",
}

_solver_ids = itertools.count(1)


class _SolverFilter(logging.Filter):
    """Passes only the records logged by one MIPSolver."""

    def __init__(self, solver_id):
        super().__init__()
        self.solver_id = solver_id

    def filter(self, record):
        return getattr(record, "solver_id", None) == self.solver_id


# --- Decision variable handle ---
class Variable:
    """
    A non-owning handle to a variable registered in a MIPSolver.

    Two Variable objects are equal when they point at the same engine
    variable of the same solver.
    """
    def __init__(self, solver, engine_var, kind, lower_bound, upper_bound,
                 objective):
        self._solver = solver
        self._var = engine_var
        self._index = engine_var.index()
        self._name = engine_var.name()
        self._kind = kind
        self._lower_bound = lower_bound
        self._upper_bound = upper_bound
        self._objective = objective

    @property
    def solver(self):
        return self._solver

    @property
    def index(self):
        return self._index

    @property
    def name(self):
        return self._name

    @property
    def kind(self):
        return self._kind

    @property
    def lower_bound(self):
        return self._lower_bound

    @property
    def upper_bound(self):
        return self._upper_bound

    @property
    def objective(self):
        return self._objective

    def is_binary(self):
        return self._kind == MIP.BINARY

    def __eq__(self, other):
        if not isinstance(other, Variable):
            return NotImplemented
        return self._solver is other._solver and self._index == other._index

    def __hash__(self):
        return hash((id(self._solver), self._index))

    def __repr__(self):
        return (
            f"<easymip Variable {self._name} {self._kind} "
            f"[{self._lower_bound}, {self._upper_bound}]>"
        )


# --- Two-phase constraint builder ---
class Constraint:
    """
    Accumulates (variable, coefficient) terms, then commits them as one row
    ``lower_bound <= sum(coefficient * variable) <= upper_bound``.

    Terms for the same variable add up. The builder is spent after
    commit(): further add_variable() or commit() calls raise
    AlreadyCommitted.
    """
    def __init__(self, solver, name):
        self._solver = solver
        self.name = name
        self._terms = []
        self._committed = False

    def add_variable(self, variable, coefficient):
        if self._committed:
            raise AlreadyCommitted(f"Constraint '{self.name}' is committed")
        self._solver._check_owner(variable)
        self._terms.append((variable, float(coefficient)))

    def commit(self, lower_bound, upper_bound):
        if self._committed:
            raise AlreadyCommitted(f"Constraint '{self.name}' is committed")
        if lower_bound > upper_bound:
            raise InvalidBounds(
                f"Constraint '{self.name}': lower bound {lower_bound} "
                f"exceeds upper bound {upper_bound}"
            )
        self._solver._add_row(self.name, self._terms, lower_bound, upper_bound)
        self._committed = True

    def is_committed(self):
        return self._committed

    def terms(self):
        return list(self._terms)

    def __repr__(self):
        state = "committed" if self._committed else "open"
        return f"<easymip Constraint {self.name} {state} {len(self._terms)} terms>"


# --- Solve result or candidate assignment ---
class Solution:
    """
    Values for the variables of one solver plus the terminal status.

    Solutions returned by MIPSolver.solve() are read-only. Solutions from
    MIPSolver.empty_solution() start empty: fill them with set_value() and
    submit them with commit(), which returns whether the assignment
    satisfies every bound and constraint of the model.
    """
    def __init__(self, solver, status=MIP.UNKNOWN, values=None, objective=None,
                 committed=False):
        self._solver = solver
        self._status = status
        self._values = values
        self._objective = objective
        self._committed = committed
        self._assigned = {}

    # --- Status ---
    def status(self):
        return self._status

    def is_optimal(self):
        return self._status == MIP.OPTIMAL

    def is_feasible(self):
        return self._status != MIP.INFEASIBLE

    def has_values(self):
        return self._values is not None

    # --- Values ---
    def value(self, variable):
        self._solver._check_owner(variable)
        if self._values is None:
            if not self._committed and variable.index in self._assigned:
                return self._assigned[variable.index]
            raise NoSolution(
                f"No value for {variable.name}: solution status is "
                f"{self._status}"
            )
        if variable.index >= len(self._values):
            raise NoSolution(
                f"{variable.name} was created after this solution"
            )
        return self._values[variable.index]

    def objective(self):
        self._solver._check_open()
        if self._objective is None:
            raise NoSolution(
                f"No objective value: solution status is {self._status}"
            )
        return self._objective

    # --- Candidate construction ---
    def set_value(self, variable, value):
        if self._committed:
            raise AlreadyCommitted("Solution is committed and read-only")
        self._solver._check_owner(variable)
        self._assigned[variable.index] = float(value)

    def commit(self):
        """
        Submits the candidate to the solver. Unset variables count as 0.

        Returns True when the candidate was accepted; it then becomes a
        FEASIBLE read-only solution and is passed to the engine as a hint
        for the next solve. A rejected candidate stays open.
        """
        if self._committed:
            raise AlreadyCommitted("Solution is already committed")
        accepted = self._solver._accept(self._assigned)
        if accepted is None:
            return False

        self._values, self._objective = accepted
        self._status = MIP.FEASIBLE
        self._committed = True
        return True

    def __repr__(self):
        return f"<easymip Solution {self._status} objective={self._objective}>"


# --- The main 'MIPSolver' class ---
class MIPSolver:
    """
    Owns one OR-Tools MIP engine context and everything created through it.

    Arguments:
        name: model name passed to the engine.
        backend: OR-Tools solver id, 'SCIP' by default ('CBC' also works).
        emphasis: one of the MIP.EMPHASIS_* hints.
        sense: MIP.MINIMIZE or MIP.MAXIMIZE.
        log_file: path that receives this solver's log records.
        time_limit: seconds, or None for no limit.

    Call close() (or use the solver as a context manager) to release the
    engine. Every Variable, Constraint and Solution derived from the solver
    is invalid afterwards.
    """
    def __init__(self, name="MIP", backend="SCIP",
                 emphasis=MIP.EMPHASIS_DEFAULT, sense=MIP.MINIMIZE,
                 log_file=None, time_limit=None):
        self._engine = pywraplp.Solver.CreateSolver(backend)
        if not self._engine:
            raise EngineFailure(f"Could not create {backend} solver instance")

        self.name = name
        self.backend = backend
        self._id = next(_solver_ids)
        # All solvers share the module logger; records carry the solver id
        # so a log_file only receives its own solver's lines.
        self._logger = logging.LoggerAdapter(logger, {"solver_id": self._id})
        self._handler = None
        self._hint = None
        self._reset_before_solve = False
        if log_file is not None:
            self._handler = logging.FileHandler(log_file)
            self._handler.setFormatter(
                logging.Formatter("%(asctime)s %(levelname)s %(message)s")
            )
            self._handler.addFilter(_SolverFilter(self._id))
            logger.addHandler(self._handler)
            if not logger.isEnabledFor(logging.INFO):
                logger.setLevel(logging.INFO)

        # Engine chatter stays off stdout; the version goes to the log.
        self._engine.SuppressOutput()
        self._logger.info("%s: %s", name, self._engine.SolverVersion())

        if sense == MIP.MINIMIZE:
            self._engine.Objective().SetMinimization()
        elif sense == MIP.MAXIMIZE:
            self._engine.Objective().SetMaximization()
        else:
            self.close()
            raise EasyMipError(f"Unknown objective sense {sense}")
        self.sense = sense

        self._emphasis = MIP.EMPHASIS_DEFAULT
        self._time_limit = None
        try:
            self.set_emphasis(emphasis)
            self.set_time_limit(time_limit)
        except (EasyMipError, ValueError):
            self.close()
            raise

    # --- Lifetime ---
    def close(self):
        """Releases the engine. Safe to call more than once."""
        if self._engine is None:
            return
        self._engine.Clear()
        self._engine = None
        self._hint = None
        self._logger.info("%s: solver released", self.name)
        if self._handler is not None:
            logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def is_closed(self):
        return self._engine is None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def _check_open(self):
        if self._engine is None:
            raise SolverClosed(f"Solver '{self.name}' is closed")

    def _check_owner(self, variable):
        if not isinstance(variable, Variable):
            raise TypeError(f"Expected a Variable, got {type(variable)}")
        if variable.solver is not self:
            raise CrossSolverHandle(
                f"{variable.name} belongs to solver "
                f"'{variable.solver.name}', not '{self.name}'"
            )
        self._check_open()

    # --- Configuration ---
    def set_time_limit(self, seconds):
        """Limits later solve() and count_solutions() calls. None clears it."""
        self._check_open()
        if seconds is None:
            self._engine.set_time_limit(0)  # OR-Tools: 0 means no limit
        elif seconds <= 0:
            raise ValueError(f"Time limit must be positive, got {seconds}")
        else:
            self._engine.set_time_limit(max(1, int(seconds * 1000)))
        self._time_limit = seconds

    def time_limit(self):
        return self._time_limit

    def set_emphasis(self, emphasis):
        """
        Sets a qualitative hint for later solves. It changes how the
        engine searches, not what counts as a solution.
        """
        self._check_open()
        if emphasis not in _SCIP_EMPHASIS:
            raise EasyMipError(f"Unknown emphasis {emphasis}")
        if self.backend.upper() == "SCIP":
            self._engine.SetSolverSpecificParametersAsString(
                _SCIP_EMPHASIS[emphasis]
            )
        elif emphasis == MIP.EMPHASIS_FEASIBILITY:
            self._logger.warning(
                "%s: feasibility emphasis is ignored by %s",
                self.name, self.backend,
            )
        self._emphasis = emphasis

    def emphasis(self):
        return self._emphasis

    def _solver_parameters(self):
        params = pywraplp.MPSolverParameters()
        if self._emphasis == MIP.EMPHASIS_OPTIMALITY:
            params.SetDoubleParam(
                pywraplp.MPSolverParameters.RELATIVE_MIP_GAP, 0.0
            )
        return params

    # --- Model building ---
    def _add_variable(self, kind, engine_var, lower_bound, upper_bound,
                      objective):
        if objective != 0.0:
            self._engine.Objective().SetCoefficient(engine_var, objective)
        return Variable(
            self, engine_var, kind, lower_bound, upper_bound, objective
        )

    def _next_name(self, prefix, name):
        if name:
            return name
        return f"{prefix}{self._engine.NumVariables()}"

    def binary_variable(self, objective=0.0, name=None):
        """Creates a variable in {0, 1} with the given objective coefficient."""
        self._check_open()
        engine_var = self._engine.BoolVar(self._next_name("b", name))
        return self._add_variable(MIP.BINARY, engine_var, 0, 1, objective)

    def integer_variable(self, lower_bound, upper_bound, objective=0.0,
                         name=None):
        """Creates an integer variable in [lower_bound, upper_bound]."""
        self._check_open()
        if lower_bound > upper_bound:
            raise InvalidBounds(
                f"Lower bound {lower_bound} exceeds upper bound {upper_bound}"
            )
        engine_var = self._engine.IntVar(
            lower_bound, upper_bound, self._next_name("x", name)
        )
        return self._add_variable(
            MIP.INTEGER, engine_var, lower_bound, upper_bound, objective
        )

    def constraint(self, name=None):
        self._check_open()
        if not name:
            name = f"c{self._engine.NumConstraints()}"
        return Constraint(self, name)

    def _add_row(self, name, terms, lower_bound, upper_bound):
        self._check_open()
        coefficients = {}
        for variable, coefficient in terms:
            coefficients[variable] = coefficients.get(variable, 0.0) + coefficient

        row = self._engine.RowConstraint(lower_bound, upper_bound, name)
        for variable, coefficient in coefficients.items():
            row.SetCoefficient(variable._var, coefficient)

    def num_variables(self):
        self._check_open()
        return self._engine.NumVariables()

    def num_constraints(self):
        self._check_open()
        return self._engine.NumConstraints()

    def _export_model(self):
        model = linear_solver_pb2.MPModelProto()
        self._engine.ExportModelToProto(model)
        return model

    # --- Solving ---
    def solve(self):
        """
        Runs the engine until it proves optimality or infeasibility, or the
        time limit hits, and returns a Solution with its best incumbent.
        """
        self._check_open()
        self._logger.info(
            "%s: starting optimization (%d variables, %d constraints)",
            self.name,
            self._engine.NumVariables(),
            self._engine.NumConstraints(),
        )
        # SCIP only takes a hint on a freshly extracted model, and a hint
        # left on the engine breaks the following solve. Hints are used
        # once, and the model is extracted again around a hinted solve.
        hinted = self._hint is not None
        if hinted or self._reset_before_solve:
            self._engine.Reset()
        if hinted:
            variables = self._engine.variables()[:len(self._hint)]
            self._engine.SetHint(variables, self._hint)
        try:
            status = self._engine.Solve(self._solver_parameters())
        finally:
            if hinted:
                self._engine.SetHint([], [])
                self._hint = None
            self._reset_before_solve = hinted
        if status in _ENGINE_FAILURES:
            raise EngineFailure(
                f"{self.backend} aborted with engine status {status}"
            )

        mapped = _STATUS.get(status, MIP.UNKNOWN)
        if mapped in (MIP.OPTIMAL, MIP.FEASIBLE):
            values = [v.solution_value() for v in self._engine.variables()]
            objective = self._engine.Objective().Value()
            self._logger.info(
                "%s: %s solution found. Objective: %s",
                self.name, mapped, objective,
            )
            return Solution(self, mapped, values, objective, committed=True)

        if mapped == MIP.INFEASIBLE:
            self._logger.info("%s: model is infeasible", self.name)
        else:
            self._logger.info("%s: no solution found", self.name)
        return Solution(self, mapped, committed=True)

    def empty_solution(self):
        self._check_open()
        return Solution(self)

    def _accept(self, assigned):
        self._check_open()
        model = self._export_model()
        x = [0.0] * len(model.variable)
        for index, value in assigned.items():
            x[index] = value

        found = feasibility.violations(model, np.asarray(x))
        if found:
            self._logger.warning(
                "%s: candidate rejected (%d violations), first: %s",
                self.name, len(found), found[0],
            )
            return None

        # Handed to the engine by the next solve() only.
        self._hint = x
        objective = feasibility.objective_value(model, np.asarray(x))
        self._logger.info(
            "%s: candidate accepted. Objective: %s", self.name, objective
        )
        return x, objective

    def count_solutions(self):
        """
        Counts every feasible assignment of the current model, ignoring
        the objective. This enumerates with CP-SAT instead of optimizing.
        """
        self._check_open()
        return enumeration.count_solutions(
            self._export_model(), self._time_limit, self._logger
        )

    def __repr__(self):
        state = "closed" if self._engine is None else self.backend
        return f"<easymip MIPSolver {self.name} {state}>"
