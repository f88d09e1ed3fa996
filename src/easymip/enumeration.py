"""
Counts every feasible assignment of a model with the CP-SAT solver.

This is a separate path from ``MIPSolver.solve()``: the objective is
ignored and the search enumerates the whole feasible set instead of
optimizing over it. CP-SAT works on integers only, so every variable needs
finite bounds and every row integral coefficients.
"""

import logging
import math

from ortools.sat.python import cp_model

from .errors import EasyMipError, EngineFailure

logger = logging.getLogger(__name__)


class SolutionCounter(cp_model.CpSolverSolutionCallback):
    """Counts the solutions reported during enumeration."""

    def __init__(self):
        super().__init__()
        self.count = 0

    def on_solution_callback(self):
        self.count += 1


def _integral(value, what):
    if not (_in_int64(value) and float(value).is_integer()):
        raise EasyMipError(
            f"Cannot enumerate solutions: {what} {value} is not a 64-bit "
            "integer"
        )
    return int(value)


def _lower(value):
    if value <= cp_model.INT_MIN:
        return cp_model.INT_MIN
    return int(math.ceil(value - 1e-9))


def _upper(value):
    if value >= cp_model.INT_MAX:
        return cp_model.INT_MAX
    return int(math.floor(value + 1e-9))


def _in_int64(value):
    return cp_model.INT_MIN < value < cp_model.INT_MAX


def build_cp_model(model_proto):
    """
    Translates an exported ``MPModelProto`` into a CpModel.

    Returns ``None`` when the bounds alone already leave no integer point,
    which means the model has no solution.
    """
    model = cp_model.CpModel()
    variables = []
    for var in model_proto.variable:
        if not var.is_integer:
            raise EasyMipError(
                f"Cannot enumerate solutions: {var.name} is not integer"
            )
        if not (_in_int64(var.lower_bound) and _in_int64(var.upper_bound)):
            raise EasyMipError(
                f"Cannot enumerate solutions: {var.name} bounds "
                f"[{var.lower_bound}, {var.upper_bound}] exceed 64-bit integers"
            )
        lb = _lower(var.lower_bound)
        ub = _upper(var.upper_bound)
        if lb > ub:
            return None
        variables.append(model.NewIntVar(lb, ub, var.name))

    for constraint in model_proto.constraint:
        coefficients = [
            _integral(c, f"coefficient in {constraint.name}")
            for c in constraint.coefficient
        ]
        expr = cp_model.LinearExpr.weighted_sum(
            [variables[index] for index in constraint.var_index], coefficients
        )
        lb = _lower(constraint.lower_bound)
        ub = _upper(constraint.upper_bound)
        if lb > ub:
            return None
        model.AddLinearConstraint(expr, lb, ub)

    return model


def count_solutions(model_proto, time_limit=None, log=logger):
    """
    Returns the number of feasible assignments of ``model_proto``.

    When ``time_limit`` (seconds) stops the search before the enumeration
    is complete, the partial count is returned and a warning is logged.
    """
    model = build_cp_model(model_proto)
    if model is None:
        log.info("Bounds leave no integer point; 0 solutions")
        return 0

    solver = cp_model.CpSolver()
    solver.parameters.enumerate_all_solutions = True
    solver.parameters.num_workers = 1
    if time_limit is not None:
        solver.parameters.max_time_in_seconds = time_limit

    counter = SolutionCounter()
    log.info(
        "Enumerating solutions of %d variables, %d constraints",
        len(model_proto.variable),
        len(model_proto.constraint),
    )
    status = solver.Solve(model, counter)

    if status == cp_model.MODEL_INVALID:
        raise EngineFailure(
            f"CP-SAT rejected the model: {model.Validate()}"
        )
    if status == cp_model.OPTIMAL or status == cp_model.INFEASIBLE:
        log.info("Found %d solutions", counter.count)
    else:
        log.warning(
            "Enumeration stopped early (%s); %d solutions found so far",
            solver.StatusName(status),
            counter.count,
        )
    return counter.count
