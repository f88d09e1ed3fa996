"""
Checks a candidate assignment against a model exported from the engine.

The model arrives as an ``MPModelProto`` (see ``MIPSolver._export_model``),
so the check sees exactly the rows the engine holds, duplicate terms
included.
"""

import numpy as np
from scipy import sparse

# Absolute tolerance used for bounds, integrality and row activities.
TOLERANCE = 1e-6


def model_matrix(model_proto):
    """
    Builds the sparse row matrix A so that row activities are ``A @ x``.
    Repeated (row, column) entries are summed.
    """
    rows, cols, data = [], [], []
    for row, constraint in enumerate(model_proto.constraint):
        rows.extend([row] * len(constraint.var_index))
        cols.extend(constraint.var_index)
        data.extend(constraint.coefficient)

    shape = (len(model_proto.constraint), len(model_proto.variable))
    return sparse.csr_matrix(
        (
            np.asarray(data, dtype=float),
            (np.asarray(rows, dtype=int), np.asarray(cols, dtype=int)),
        ),
        shape=shape,
    )


def objective_value(model_proto, x):
    c = np.array([v.objective_coefficient for v in model_proto.variable])
    return float(c @ x) + model_proto.objective_offset


def violations(model_proto, x, tolerance=TOLERANCE):
    """
    Returns a list of human readable violations of ``x`` against the
    variable bounds, integrality and constraint ranges. An empty list
    means the assignment is feasible.
    """
    found = []
    variables = model_proto.variable

    lower = np.array([v.lower_bound for v in variables])
    upper = np.array([v.upper_bound for v in variables])
    outside = (x < lower - tolerance) | (x > upper + tolerance)
    for i in map(int, np.flatnonzero(outside)):
        found.append(
            f"{variables[i].name}={x[i]} outside [{lower[i]}, {upper[i]}]"
        )

    integer = np.array([v.is_integer for v in variables], dtype=bool)
    fractional = np.abs(x - np.round(x)) > tolerance
    for i in map(int, np.flatnonzero(integer & fractional)):
        found.append(f"{variables[i].name}={x[i]} is not integral")

    if model_proto.constraint:
        activity = model_matrix(model_proto) @ x
        constraints = model_proto.constraint
        row_lower = np.array([c.lower_bound for c in constraints])
        row_upper = np.array([c.upper_bound for c in constraints])
        bad = (activity < row_lower - tolerance) | (
            activity > row_upper + tolerance
        )
        for r in map(int, np.flatnonzero(bad)):
            found.append(
                f"{constraints[r].name}: activity {activity[r]} outside "
                f"[{row_lower[r]}, {row_upper[r]}]"
            )

    return found
