# Module containing utility functions for the library
from typing import Callable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import norm, t
from statsmodels.tools.numdiff import approx_fprime

from modelinsight.prototypes import ConfigurationError

# probabilities are clipped to [eps, 1 - eps] before moving to the logit scale
PROBABILITY_EPS = 1e-12


def sanitize_ci(ci: Optional[float]) -> Optional[float]:
    """
    Validate a confidence level.

    Parameters
    ----------
    ci : float or None
        Requested confidence level. ``NaN`` is treated as ``None``.

    Returns
    -------
    float or None
        The validated level, or None when no interval was requested.

    Raises
    ------
    ConfigurationError
        If the level is not a number in (0, 1].
    """
    if ci is None:
        return None
    try:
        level = float(ci)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"`ci` must be a number in (0, 1]. Received: {ci!r}."
        )
    if np.isnan(level):
        return None
    if not 0 < level <= 1:
        raise ConfigurationError(
            f"`ci` must lie in (0, 1]. Received: {level}."
        )
    return level


def critical_value(ci: float, df: Optional[float] = None) -> float:
    """
    Two-sided critical value for a confidence level.

    Uses the t distribution when ``df`` is given and finite, the standard
    normal otherwise.
    """
    q = 1 - (1 - ci) / 2
    if df is not None and np.isfinite(df):
        return float(t.ppf(q, df))
    return float(norm.ppf(q))


def delta_method_se(
    func: Callable[[np.ndarray], np.ndarray],
    params: np.ndarray,
    cov: np.ndarray
) -> np.ndarray:
    """
    Standard errors of ``func(params)`` by the delta method.

    Parameters
    ----------
    func : callable
        Maps a flat parameter vector to a flat vector of predictions.
    params : array-like, shape=(k,)
        Parameter estimates.
    cov : array-like, shape=(k, k)
        Covariance matrix of ``params``.

    Returns
    -------
    se : np.ndarray
        Standard error of each element of ``func(params)``.
    """
    params = np.asarray(params, dtype=float).ravel()
    cov = np.asarray(cov, dtype=float)
    jac = approx_fprime(params, func, centered=True)
    # approx_fprime squeezes single-output and single-parameter cases
    jac = np.asarray(jac).reshape(-1, params.size)
    var = np.einsum("ij,jk,ik->i", jac, cov, jac)
    return np.sqrt(np.clip(var, 0, None))


def logit_interval(
    prob: np.ndarray,
    se: np.ndarray,
    ci: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Confidence bounds for probabilities, built on the logit scale.

    The standard error is moved to the logit scale with the delta method and
    the bounds are mapped back, so they always bracket the estimate and stay
    inside [0, 1].
    """
    prob = np.asarray(prob, dtype=float)
    if ci >= 1:
        lower = np.where(np.isnan(prob), np.nan, 0.0)
        upper = np.where(np.isnan(prob), np.nan, 1.0)
        return lower, upper

    p = np.clip(prob, PROBABILITY_EPS, 1 - PROBABILITY_EPS)
    eta = np.log(p / (1 - p))
    se_eta = np.asarray(se, dtype=float) / (p * (1 - p))
    crit = critical_value(ci)
    with np.errstate(invalid="ignore", over="ignore"):
        lower = 1 / (1 + np.exp(-(eta - crit * se_eta)))
        upper = 1 / (1 + np.exp(-(eta + crit * se_eta)))
    # clipping moves saturated estimates off 0 and 1
    return np.minimum(lower, prob), np.maximum(upper, prob)


def reshape_long(
    matrix: np.ndarray,
    levels: Sequence,
    value_name: str
) -> pd.DataFrame:
    """
    Reshape an (observations x categories) matrix to long format.

    Parameters
    ----------
    matrix : array-like, shape=(n_obs, n_levels)
        One column per response category.
    levels : sequence
        Category labels in model order.
    value_name : str
        Name of the value column.

    Returns
    -------
    pd.DataFrame
        Columns ``Row``, ``Response`` and ``value_name``, one row per
        (category, observation) pair, sorted by category then row.
    """
    matrix = np.asarray(matrix)
    if matrix.ndim != 2 or matrix.shape[1] != len(levels):
        raise ValueError(
            f"Expected a matrix with {len(levels)} columns, got shape {matrix.shape}."
        )
    labels = list(levels)
    wide = pd.DataFrame(matrix, columns=range(len(labels)))
    wide.insert(0, "Row", np.arange(1, matrix.shape[0] + 1))
    long = wide.melt(id_vars="Row", var_name="Response", value_name=value_name)
    long["Response"] = pd.Categorical.from_codes(
        long["Response"].astype(int),
        categories=pd.Index(labels),
        ordered=True
    )
    long = long[["Row", "Response", value_name]]
    return sort_predictions(long)


def sort_predictions(frame: pd.DataFrame) -> pd.DataFrame:
    # Order by category (model order) first, then by row.
    keys = ["Response", "Row"] if "Response" in frame.columns else ["Row"]
    return frame.sort_values(keys, kind="mergesort").reset_index(drop=True)
