"""modelinsight.find

Discovery of the structural pieces of a fitted model: formula, response
expression and variables, the data the model was fitted on, weights, and
the design matrix for new data.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from patsy import DesignInfo, NAAction, build_design_matrices
from statsmodels.regression.linear_model import OLS, WLS
from statsmodels.tools.tools import add_constant

from modelinsight.prototypes import ConfigurationError

_INTERCEPT_NAMES = ("const", "Intercept")
_IDENTIFIER = re.compile(r"(?<![\w.])[A-Za-z_][A-Za-z0-9_.]*")


def find_statsmodel(x: Any) -> Optional[Any]:
    """
    Return the statsmodels model behind ``x``.

    ``x`` may be a results object or the model itself. Anything else
    (including scikit-learn estimators) yields None.
    """
    if x is None or isinstance(x, (pd.DataFrame, pd.Series, np.ndarray)):
        return None
    model = getattr(x, "model", None)
    if model is not None and hasattr(model, "endog") and hasattr(model, "exog"):
        return model
    if hasattr(x, "endog") and hasattr(x, "exog"):
        return x
    return None


def find_formula(x: Any) -> Optional[str]:
    """Return the formula string of a model fitted with a formula, else None."""
    model = find_statsmodel(x)
    if model is None:
        model = getattr(x, "model", x)
    formula = getattr(model, "formula", None)
    if not isinstance(formula, str):
        formula = getattr(getattr(model, "data", None), "formula", None)
    return formula if isinstance(formula, str) else None


def find_terms(x: Any) -> Optional[Dict[str, Union[str, List[str]]]]:
    """
    Split a model into its response expression and right-hand side terms.

    Returns
    -------
    dict or None
        ``{"response": str, "conditional": list of str}``, or None when the
        model exposes neither a formula nor variable names.
    """
    if x is None or isinstance(x, (pd.DataFrame, pd.Series, np.ndarray)):
        return None
    formula = find_formula(x)
    if formula is not None and "~" in formula:
        lhs, rhs = formula.split("~", 1)
        conditional = [
            term for term in _split_top_level(rhs, "+")
            if term and term not in ("0", "1", "-1")
        ]
        return {"response": lhs.strip(), "conditional": conditional}

    model = find_statsmodel(x)
    if model is None:
        return None
    endog_names = model.endog_names
    if not isinstance(endog_names, str):
        endog_names = ", ".join(map(str, endog_names))
    conditional = [str(name) for name in design_names(model) if name not in _INTERCEPT_NAMES]
    return {"response": endog_names, "conditional": conditional}


def find_response(x: Any) -> Optional[Union[str, List[str]]]:
    """
    Name of the response variable, without any transformation applied.

    ``np.log(y + 1) ~ x`` gives ``"y"``. Models with several response
    variables return a list of names.
    """
    terms = find_terms(x)
    if terms is None:
        return None
    frame = _fitting_frame(x)
    columns = None if frame is None else frame.columns
    names = _variables(terms["response"], columns)
    if not names:
        return None
    return names[0] if len(names) == 1 else names


def get_data(x: Any) -> Optional[pd.DataFrame]:
    """
    The data used to fit a model.

    For formula models the original (untransformed) variables are returned,
    response first, restricted to the rows the model actually used. Array
    models return the response and the design columns without constant.
    Weighted least squares adds a ``(weights)`` column.

    Returns None for models that do not keep their fitting data.
    """
    model = find_statsmodel(x)
    if model is None:
        return None

    frame = _fitting_frame(x)
    if frame is not None:
        terms = find_terms(x)
        response = _variables(terms["response"], frame.columns)
        predictors = [
            name for term in terms["conditional"]
            for name in _variables(term, frame.columns)
        ]
        columns = list(dict.fromkeys(response + predictors))
        out = frame[columns]
        row_labels = getattr(model.data, "row_labels", None)
        if row_labels is not None:
            out = out.loc[row_labels]
        out = out.copy()
    else:
        out = pd.DataFrame(np.asarray(model.exog), columns=design_names(model))
        out = out.drop(columns=[c for c in _INTERCEPT_NAMES if c in out.columns])
        endog = np.asarray(getattr(model.data, "orig_endog", model.endog))
        if endog.ndim != 1 or len(endog) != len(out):
            endog = np.asarray(model.endog)
        out.insert(0, find_terms(x)["response"], endog)
        row_labels = getattr(model.data, "row_labels", None)
        if row_labels is not None:
            out.index = row_labels

    weights = get_weights(x)
    if weights is not None:
        out["(weights)"] = np.asarray(weights)
    return out


def get_weights(x: Any, null_as_ones: bool = False) -> Optional[np.ndarray]:
    """
    Prior weights of a model.

    Returns None for unweighted models, or a vector of ones when
    ``null_as_ones`` is True.
    """
    model = find_statsmodel(x)
    if model is None:
        return None
    # OLS is a WLS subclass with unit weights
    if isinstance(model, WLS) and not isinstance(model, OLS):
        return np.asarray(model.weights, dtype=float)
    if null_as_ones:
        return np.ones(int(np.asarray(model.endog).shape[0]))
    return None


def design_names(x: Any) -> List[str]:
    """
    Column names of the design matrix of a statsmodels model.

    ``exog_names`` of ordinal models also lists the threshold parameters;
    only the names of actual ``exog`` columns are returned.
    """
    model = find_statsmodel(x)
    if model is None:
        return []
    names = [str(name) for name in model.exog_names]
    exog = np.asarray(model.exog)
    n_columns = exog.shape[1] if exog.ndim == 2 else 1
    return names[:n_columns]


def model_matrix(x: Any, data: Optional[pd.DataFrame] = None) -> np.ndarray:
    """
    Design matrix of a statsmodels model for ``data``.

    Formula models rebuild the matrix from the stored design information, so
    transformations and categorical codings match the fit. Missing values are
    kept so that rows stay aligned with ``data``.
    """
    model = find_statsmodel(x)
    if model is None:
        raise TypeError(f"Cannot build a design matrix for objects of class {type(x).__name__}.")
    if data is None:
        return np.asarray(model.exog, dtype=float)

    exog_names = design_names(model)
    design_info = _design_info(model)
    if design_info is not None:
        (design,) = build_design_matrices(
            [design_info],
            data,
            NA_action=NAAction(NA_types=[]),
            return_type="dataframe"
        )
        return np.asarray(design[exog_names], dtype=float)

    frame = pd.DataFrame(data)
    if "const" in exog_names and "const" not in frame.columns:
        frame = add_constant(frame, has_constant="add")
    missing = [name for name in exog_names if name not in frame.columns]
    if missing:
        raise ConfigurationError(
            f"The following model variables were not found in `data`: {missing}."
        )
    return np.asarray(frame[exog_names], dtype=float)


def _design_info(model: Any) -> Optional[DesignInfo]:
    # newer statsmodels keep the patsy design as ``model_spec``
    for attribute in ("model_spec", "design_info"):
        spec = getattr(model.data, attribute, None)
        if isinstance(spec, DesignInfo):
            return spec
    return None


def _fitting_frame(x: Any) -> Optional[pd.DataFrame]:
    model = find_statsmodel(x)
    if model is None:
        return None
    frame = getattr(model.data, "frame", None)
    return frame if isinstance(frame, pd.DataFrame) else None


def _variables(expression: str, columns: Optional[pd.Index] = None) -> List[str]:
    """
    Variable names referenced in a formula expression, in order of appearance.

    Function names (identifiers followed by an opening parenthesis) are
    skipped. With ``columns`` given, only known column names are kept.
    """
    names = []
    for match in _IDENTIFIER.finditer(expression):
        name = match.group(0)
        rest = expression[match.end():].lstrip()
        if rest.startswith("("):
            continue
        if columns is not None and name not in columns:
            continue
        if columns is None and name in _INTERCEPT_NAMES:
            continue
        names.append(name)
    return list(dict.fromkeys(names))


def _split_top_level(expression: str, sep: str) -> List[str]:
    # Split on ``sep`` outside of parentheses.
    parts, depth, current = [], 0, []
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    parts.append("".join(current).strip())
    return parts
