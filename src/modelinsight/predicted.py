"""modelinsight.predicted

Predicted values of fitted models in one canonical long format, whatever
the shape of the model's native prediction output. Standard errors and
confidence intervals travel alongside the predictions in a separate table.
"""

from __future__ import annotations

import warnings
from typing import Any, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from modelinsight.adapters import ADAPTERS, NativePrediction
from modelinsight.figures import plot_predicted
from modelinsight.families import (
    CAPABILITIES,
    CLASSIFICATION,
    VALID_PREDICT,
    Capabilities,
    ModelFamily,
    find_family
)
from modelinsight.find import find_response, get_data
from modelinsight.formatting import format_value
from modelinsight.prototypes import (
    ConfigurationError,
    MissingValueWarning,
    Protoresult,
    UnsupportedFeatureWarning
)
from modelinsight.utils import reshape_long, sanitize_ci, sort_predictions


class PredictionResult(Protoresult):
    """
    Predictions of a fitted model.

    Parameters
    ----------
    predictions : pandas.DataFrame
        Columns ``Row``, optionally ``Response``, and ``Predicted``.
    ci_data : pandas.DataFrame or None
        Columns ``Row``, optionally ``Response``, ``SE`` and, when intervals
        were requested, ``CI_low`` and ``CI_high``.
    predict : str
        ``"expectation"`` or ``"classification"``.
    ci : float or None
        Confidence level of the intervals in ``ci_data``.
    family : ModelFamily
        Family of the model the predictions come from.

    Attributes
    ----------
    predictions : pandas.DataFrame
        One row per observation, or per (category, observation) pair for
        multi-category outcomes, ordered by category then row. ``Row`` is the
        1-based position of the observation in the prediction data.
    ci_data : pandas.DataFrame or None
        Uncertainty of the predictions, in the same order.
    """
    def __init__(
        self,
        *,
        predictions: pd.DataFrame,
        ci_data: Optional[pd.DataFrame],
        predict: str,
        ci: Optional[float],
        family: ModelFamily,
    ) -> None:
        super().__init__()
        self.predictions = predictions
        self.ci_data = ci_data
        self.predict = predict
        self.ci = ci
        self.family = family

    def __len__(self) -> int:
        return len(self.predictions)

    def __repr__(self) -> str:
        return (f"PredictionResult(family={self.family.value!r}, predict={self.predict!r}, "
                f"ci={self.ci!r}, rows={len(self)})")

    @property
    def keys(self) -> List[str]:
        """Columns identifying a prediction: ``Row`` and, if present, ``Response``."""
        return [c for c in ("Row", "Response") if c in self.predictions.columns]

    def as_data_frame(self) -> pd.DataFrame:
        """
        Predictions joined with their standard errors and intervals.

        Returns
        -------
        pd.DataFrame
            ``predictions`` with the ``ci_data`` columns appended; row order
            is that of ``predictions``.
        """
        if self.ci_data is None:
            return self.predictions.copy()
        return self.predictions.merge(self.ci_data, on=self.keys, how="left")

    def summary(self, digits: int = 3, max_rows: int = 20) -> None:
        """
        Print a textual summary of the predictions.
        """

        def print_separator(title=None):
            print("=" * 30)
            if title:
                print(title)
                print("=" * 30)

        print_separator("Predictions Summary")
        print(f"Model family: {self.family.value}")
        print(f"Prediction type: {self.predict}")
        if self.ci is not None:
            print(f"Confidence level: {format_value(self.ci, as_percent=True, digits=0)}")
        print(f"Number of observations: {self.predictions['Row'].nunique()}")
        if "Response" in self.predictions.columns:
            levels = list(self.predictions["Response"].cat.categories)
            print(f"Response levels: {levels}")
        print_separator()

        table = self.as_data_frame()
        for column in ("Predicted", "SE", "CI_low", "CI_high"):
            if column in table.columns and self.predict != CLASSIFICATION:
                table[column] = format_value(table[column], digits=digits)
        print(table.head(max_rows).to_string(index=False))
        if len(table) > max_rows:
            print(f"... {len(table) - max_rows} more rows")
        print_separator()

    def plot(
        self,
        ax: Optional[plt.Axes] = None,
        title: str = '',
        figsize: Tuple[int, int] = (10, 6),
    ) -> plt.Axes:
        """
        Plot the predictions with their confidence intervals.

        See :func:`modelinsight.figures.plot_predicted`.
        """
        return plot_predicted(self, ax=ax, title=title, figsize=figsize)


def get_predicted(
    model: Any,
    data: Optional[pd.DataFrame] = None,
    predict: Optional[str] = "expectation",
    ci: Optional[float] = None,
    verbose: bool = True,
    **kwargs
) -> PredictionResult:
    """
    Predicted values of a fitted model in canonical long format.

    Parameters
    ----------
    model : fitted model
        statsmodels results (``OrderedModel``, ``MNLogit``, ``RLM``,
        ``OLS``/``WLS``/``GLS``) or a fitted scikit-learn classifier.
    data : pandas.DataFrame, optional
        New data to predict on. None uses the data the model was fitted on,
        without the response variable.
    predict : {"expectation", "classification"} or None, default="expectation"
        ``"expectation"`` returns expected values (category probabilities for
        categorical outcomes), ``"classification"`` the predicted class. If
        None, the model's native prediction type must be given as ``type``.
    ci : float, optional
        Confidence level in (0, 1] of the intervals. ``NaN`` means none.
        Defaults to None for every family, multinomial models included:
        pass ``ci=0.95`` to get intervals.
    verbose : bool, default=True
        Warn when a requested feature is not available.
    **kwargs
        ``type``: native prediction type (e.g. ``"prob"``, ``"probs"``,
        ``"class"``, ``"response"``), used only when ``predict`` is None.

    Returns
    -------
    PredictionResult

    Raises
    ------
    ConfigurationError
        Invalid ``predict``, ``type`` or ``ci``, or a prediction type the
        model family does not support.
    TypeError
        Unsupported model class or unknown keyword argument.

    Warns
    -----
    UnsupportedFeatureWarning
        Intervals requested for classification or for a family without
        interval support; the intervals are dropped.
    """
    unknown = set(kwargs) - {"type"}
    if unknown:
        raise TypeError(f"get_predicted() got unexpected keyword arguments: {sorted(unknown)}")

    family = find_family(model)
    capabilities = CAPABILITIES[family]
    predict = _validate_predict(predict, kwargs.get("type"), family, capabilities)

    ci = sanitize_ci(ci)
    if ci is not None and predict == CLASSIFICATION:
        if verbose:
            warnings.warn(
                "Confidence intervals are not available for classification.",
                UnsupportedFeatureWarning,
                stacklevel=2
            )
        ci = None
    elif ci is not None and not capabilities.intervals:
        if verbose:
            warnings.warn(
                f"Confidence intervals are not available for models of class "
                f"{model.__class__.__name__}.",
                UnsupportedFeatureWarning,
                stacklevel=2
            )
        ci = None

    data = _resolve_data(model, data, verbose)
    native = ADAPTERS[family](model, data, predict, ci)
    return _build_result(native, predict=predict, ci=ci, family=family)


def _validate_predict(
    predict: Optional[str],
    native_type: Optional[str],
    family: ModelFamily,
    capabilities: Capabilities
) -> str:
    if predict is not None:
        if predict not in VALID_PREDICT:
            raise ConfigurationError(
                "The `predict` argument must be either \"expectation\" or "
                f"\"classification\". Received: {predict!r}."
            )
    elif native_type is None:
        raise ConfigurationError("Please specify the `predict` argument.")
    elif native_type not in capabilities.native_types:
        raise ConfigurationError(
            f"`type` must be one of {list(capabilities.native_types)} for "
            f"{family.value} models. Received: {native_type!r}."
        )
    else:
        predict = capabilities.native_types[native_type]

    if not getattr(capabilities, predict):
        raise ConfigurationError(
            f"Models of the {family.value} family do not support `predict={predict!r}`."
        )
    return predict


def _resolve_data(model: Any, data: Optional[pd.DataFrame], verbose: bool) -> Optional[pd.DataFrame]:
    """
    Data to predict on, with the response variable removed.

    None falls back to the fitting data; models that do not keep it stay None.
    """
    if data is None:
        data = get_data(model)
        if data is None:
            return None
        data = data.drop(columns=["(weights)"], errors="ignore")
    elif not isinstance(data, pd.DataFrame):
        data = pd.DataFrame(data)

    response = find_response(model)
    if response is not None:
        response = [response] if isinstance(response, str) else response
        data = data.drop(columns=[c for c in response if c in data.columns])

    if verbose and data.isnull().values.any():
        warnings.warn(
            "Missing values found in data. Predictions for those rows will be missing.",
            MissingValueWarning,
            stacklevel=3
        )
    return data


def _build_result(
    native: NativePrediction,
    *,
    predict: str,
    ci: Optional[float],
    family: ModelFamily
) -> PredictionResult:
    fit = np.asarray(native.fit)
    ci_data = None

    if native.levels is not None and fit.ndim == 2:
        keys = ["Row", "Response"]
        predictions = reshape_long(fit, native.levels, "Predicted")
        if native.se is not None:
            ci_data = reshape_long(native.se, native.levels, "SE")
            if native.lower is not None and native.upper is not None:
                bounds = reshape_long(native.lower, native.levels, "CI_low").merge(
                    reshape_long(native.upper, native.levels, "CI_high"), on=keys
                )
                ci_data = ci_data.merge(bounds, on=keys)
            ci_data = sort_predictions(ci_data)
    else:
        rows = np.arange(1, len(fit) + 1)
        predictions = pd.DataFrame({"Row": rows, "Predicted": fit})
        if native.se is not None:
            ci_data = pd.DataFrame({"Row": rows, "SE": np.asarray(native.se, dtype=float)})
            if native.lower is not None and native.upper is not None:
                ci_data["CI_low"] = np.asarray(native.lower, dtype=float)
                ci_data["CI_high"] = np.asarray(native.upper, dtype=float)
        predictions = sort_predictions(predictions)

    return PredictionResult(
        predictions=predictions,
        ci_data=ci_data,
        predict=predict,
        ci=ci,
        family=family
    )
