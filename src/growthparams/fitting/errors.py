# src/growthparams/fitting/errors.py
from __future__ import annotations


class GrowthParamsError(Exception):
    """Base class for all pipeline errors."""


class DegenerateDataError(GrowthParamsError):
    """Too few or non-informative observations for one individual."""


class ConvergenceError(GrowthParamsError):
    """Optimizer did not converge within its evaluation budget."""


class SchemaError(GrowthParamsError, ValueError):
    """Structural problem with the input; aborts the whole batch."""
