"""modelinsight.families

Model families understood by :func:`modelinsight.get_predicted` and the
prediction capabilities of each.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from sklearn.base import is_classifier
from sklearn.linear_model import LogisticRegression
from statsmodels.discrete.discrete_model import MNLogit
from statsmodels.miscmodels.ordinal_model import OrderedModel
from statsmodels.regression.linear_model import RegressionModel
from statsmodels.robust.robust_linear_model import RLM

from modelinsight.find import find_statsmodel

EXPECTATION = "expectation"
CLASSIFICATION = "classification"
VALID_PREDICT = (EXPECTATION, CLASSIFICATION)


class ModelFamily(Enum):
    ORDINAL = "ordinal"
    ORDERED_LOGIT = "ordered_logit"
    MULTINOMIAL = "multinomial"
    PENALIZED_MULTINOMIAL = "penalized_multinomial"
    CLASSIFIER = "classifier"
    LINEAR = "linear"
    ROBUST_LINEAR = "robust_linear"


@dataclass(frozen=True)
class Capabilities:
    """
    What a model family can predict.

    Attributes
    ----------
    expectation : bool
        Supports expected values / category probabilities.
    classification : bool
        Supports predicted class labels.
    intervals : bool
        Supports standard errors and confidence intervals.
    native_types : dict
        The family's native prediction type names, mapped to the
        corresponding ``predict`` value.
    """
    expectation: bool
    classification: bool
    intervals: bool
    native_types: Dict[str, str] = field(default_factory=dict)


_PROBS_OR_CLASS = {"probs": EXPECTATION, "class": CLASSIFICATION}

CAPABILITIES: Dict[ModelFamily, Capabilities] = {
    ModelFamily.ORDINAL: Capabilities(
        expectation=True, classification=True, intervals=True,
        native_types={"prob": EXPECTATION, "class": CLASSIFICATION},
    ),
    ModelFamily.MULTINOMIAL: Capabilities(
        expectation=True, classification=True, intervals=True,
        native_types=_PROBS_OR_CLASS,
    ),
    ModelFamily.ORDERED_LOGIT: Capabilities(
        expectation=True, classification=True, intervals=True,
        native_types=_PROBS_OR_CLASS,
    ),
    ModelFamily.PENALIZED_MULTINOMIAL: Capabilities(
        expectation=True, classification=True, intervals=False,
        native_types=_PROBS_OR_CLASS,
    ),
    ModelFamily.CLASSIFIER: Capabilities(
        expectation=True, classification=True, intervals=False,
        native_types=_PROBS_OR_CLASS,
    ),
    ModelFamily.LINEAR: Capabilities(
        expectation=True, classification=False, intervals=True,
        native_types={"response": EXPECTATION},
    ),
    ModelFamily.ROBUST_LINEAR: Capabilities(
        expectation=True, classification=False, intervals=True,
        native_types={"response": EXPECTATION},
    ),
}


def find_family(x: Any) -> ModelFamily:
    """
    Model family of a fitted model.

    Parameters
    ----------
    x : fitted model
        statsmodels results object (``OrderedModel``, ``MNLogit``, ``RLM``,
        ``OLS``/``WLS``/``GLS``) or a fitted scikit-learn classifier with
        ``predict_proba``. ``OrderedModel`` fits with the logistic link are
        ordered-logit models; other links are generic ordinal models.

    Raises
    ------
    TypeError
        If the model class is not supported.
    """
    model = find_statsmodel(x)
    if model is not None:
        if isinstance(model, OrderedModel):
            if _is_logit(model):
                return ModelFamily.ORDERED_LOGIT
            return ModelFamily.ORDINAL
        if isinstance(model, MNLogit):
            return ModelFamily.MULTINOMIAL
        if isinstance(model, RLM):
            return ModelFamily.ROBUST_LINEAR
        if isinstance(model, RegressionModel):
            return ModelFamily.LINEAR
    elif isinstance(x, LogisticRegression):
        return ModelFamily.PENALIZED_MULTINOMIAL
    elif hasattr(x, "predict_proba") and hasattr(x, "classes_") and is_classifier(x):
        return ModelFamily.CLASSIFIER
    raise TypeError(
        f"Predictions are not supported for models of class {x.__class__.__name__}."
    )


def _is_logit(model: OrderedModel) -> bool:
    return getattr(model.distr, "name", None) == "logistic"
