"""modelinsight.adapters

One prediction adapter per model family. Each adapter calls the model's
native prediction routine and returns a :class:`NativePrediction`: a vector
with one value per observation, or a matrix with one column per response
category, plus optional standard errors and interval bounds of the same
shape.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd
from statsmodels.miscmodels.ordinal_model import OrderedModel

from modelinsight.families import CLASSIFICATION, EXPECTATION, ModelFamily
from modelinsight.find import find_statsmodel, model_matrix
from modelinsight.prototypes import ConfigurationError
from modelinsight.utils import (
    critical_value,
    delta_method_se,
    logit_interval
)

_DUMMY_NAME = re.compile(r"^.*\[(?:T\.)?(.*)\]$")


@dataclass
class NativePrediction:
    """
    Output of an adapter.

    Attributes
    ----------
    fit : np.ndarray
        Shape (n_obs,) for one value per observation, or (n_obs, n_levels)
        for per-category output.
    se, lower, upper : np.ndarray, optional
        Standard errors and interval bounds, same shape as ``fit``.
    levels : list, optional
        Category labels in model order, one per column of ``fit``.
    """
    fit: np.ndarray
    se: Optional[np.ndarray] = None
    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None
    levels: Optional[List[Any]] = None


def predict_ordinal(
    model: Any,
    data: Optional[pd.DataFrame],
    predict: str,
    ci: Optional[float]
) -> NativePrediction:
    """
    Cumulative-link (``OrderedModel``) predictions.

    The prediction always runs on a design built from the explanatory
    variables only, so the native routine returns one probability per
    response category instead of the probability of the observed level.
    ``classification`` returns the most probable level of each row.
    """
    sm_model = find_statsmodel(model)
    exog = model_matrix(model, data)
    params = np.asarray(model.params, dtype=float)

    def category_probs(p: np.ndarray) -> np.ndarray:
        return np.asarray(sm_model.predict(p, exog=exog), dtype=float)

    probs = category_probs(params)
    levels = _ordinal_levels(sm_model, probs.shape[1])
    if predict == CLASSIFICATION:
        return NativePrediction(fit=_most_probable(probs, levels))

    se = delta_method_se(
        lambda p: category_probs(p).ravel(),
        params,
        model.cov_params()
    ).reshape(probs.shape)
    lower, upper = logit_interval(probs, se, ci) if ci is not None else (None, None)
    return NativePrediction(fit=probs, se=se, lower=lower, upper=upper, levels=levels)


def predict_multinomial(
    model: Any,
    data: Optional[pd.DataFrame],
    predict: str,
    ci: Optional[float]
) -> NativePrediction:
    """
    Multinomial predictions: ``class`` mode for classification, ``probs``
    mode (category probability matrix) for expectation.

    Also serves the ordered-logit variant (``OrderedModel`` with the logistic
    link), whose category probabilities come from the cumulative-link
    computation, and the scikit-learn classifiers. ``data=None`` predicts on
    the fitting data and is never forwarded to the native routine.
    """
    sm_model = find_statsmodel(model)
    if sm_model is None:
        return _predict_classifier(model, data, predict)
    if isinstance(sm_model, OrderedModel):
        return predict_ordinal(model, data, predict, ci)

    exog = model_matrix(model, data)
    params = np.asarray(model.params, dtype=float)
    shape = params.shape

    def category_probs(p: np.ndarray) -> np.ndarray:
        return np.asarray(sm_model.predict(p.reshape(shape, order="F"), exog=exog), dtype=float)

    flat_params = params.ravel(order="F")
    probs = category_probs(flat_params)
    levels = _multinomial_levels(sm_model, probs.shape[1])
    if predict == CLASSIFICATION:
        return NativePrediction(fit=_most_probable(probs, levels))

    # cov_params() follows the column-major order of the parameter matrix
    se = delta_method_se(
        lambda p: category_probs(p).ravel(),
        flat_params,
        model.cov_params()
    ).reshape(probs.shape)
    lower, upper = logit_interval(probs, se, ci) if ci is not None else (None, None)
    return NativePrediction(fit=probs, se=se, lower=lower, upper=upper, levels=levels)


def predict_linear(
    model: Any,
    data: Optional[pd.DataFrame],
    predict: str,
    ci: Optional[float]
) -> NativePrediction:
    """
    Linear-model predictions with standard errors of the fitted mean.

    Intervals use the t distribution when the results carry t inference,
    the normal distribution otherwise.
    """
    if predict != EXPECTATION:
        raise ConfigurationError(
            "Linear models only support `predict='expectation'`."
        )
    sm_model = find_statsmodel(model)
    exog = model_matrix(model, data)
    params = np.asarray(model.params, dtype=float)
    cov = np.asarray(model.cov_params(), dtype=float)

    fit = np.asarray(sm_model.predict(params, exog=exog), dtype=float)
    se = np.sqrt(np.clip(np.einsum("ij,jk,ik->i", exog, cov, exog), 0, None))
    if ci is None:
        return NativePrediction(fit=fit, se=se)

    df = model.df_resid if getattr(model, "use_t", False) else None
    crit = critical_value(ci, df)
    # ci=1 has an infinite critical value; exact predictions keep a zero margin
    with np.errstate(invalid="ignore"):
        margin = np.where(se > 0, crit * se, 0.0)
    return NativePrediction(fit=fit, se=se, lower=fit - margin, upper=fit + margin)


def predict_robust_linear(
    model: Any,
    data: Optional[pd.DataFrame],
    predict: str,
    ci: Optional[float]
) -> NativePrediction:
    """Robust linear models (``RLM``): expectation only, then as linear."""
    if predict != EXPECTATION:
        raise ConfigurationError(
            "Robust linear models only support `predict='expectation'`."
        )
    return predict_linear(model, data, predict, ci)


ADAPTERS: Dict[ModelFamily, Callable[..., NativePrediction]] = {
    ModelFamily.ORDINAL: predict_ordinal,
    ModelFamily.MULTINOMIAL: predict_multinomial,
    ModelFamily.ORDERED_LOGIT: predict_multinomial,
    ModelFamily.PENALIZED_MULTINOMIAL: predict_multinomial,
    ModelFamily.CLASSIFIER: predict_multinomial,
    ModelFamily.LINEAR: predict_linear,
    ModelFamily.ROBUST_LINEAR: predict_robust_linear,
}


def _predict_classifier(
    estimator: Any,
    data: Optional[pd.DataFrame],
    predict: str
) -> NativePrediction:
    if data is None:
        raise ConfigurationError(
            f"Models of class {estimator.__class__.__name__} do not store their "
            "fitting data. Please provide `data`."
        )
    features = data
    if hasattr(estimator, "feature_names_in_"):
        features = data[list(estimator.feature_names_in_)]
    if predict == CLASSIFICATION:
        return NativePrediction(fit=np.asarray(estimator.predict(features), dtype=object))
    return NativePrediction(
        fit=np.asarray(estimator.predict_proba(features), dtype=float),
        levels=list(estimator.classes_)
    )


def _most_probable(probs: np.ndarray, levels: List[Any]) -> np.ndarray:
    # Rows with missing probabilities get no label.
    labels = np.asarray(levels, dtype=object)
    incomplete = np.isnan(probs).any(axis=1)
    best = np.argmax(np.where(np.isnan(probs), -np.inf, probs), axis=1)
    out = labels[best]
    out[incomplete] = None
    return out


def _ordinal_levels(sm_model: Any, n_levels: int) -> List[Any]:
    labels = getattr(sm_model, "labels", None)
    if labels is None or len(labels) != n_levels:
        return list(range(n_levels))
    return list(labels)


def _multinomial_levels(sm_model: Any, n_levels: int) -> List[Any]:
    names = getattr(sm_model, "_ynames_map", None)
    if not names or len(names) != n_levels:
        return list(range(n_levels))
    levels = []
    for key in sorted(names):
        name = names[key]
        match = _DUMMY_NAME.match(str(name))
        levels.append(match.group(1) if match else name)
    return levels
