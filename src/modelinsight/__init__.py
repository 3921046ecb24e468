"""Modelinsight package initialization.

Keep warning output clean by stripping internal file paths for modelinsight
warnings while leaving external warnings unchanged.
"""

from __future__ import annotations

import sys
import warnings

from modelinsight.families import ModelFamily, find_family
from modelinsight.find import (
    find_formula,
    find_response,
    find_terms,
    get_data,
    get_weights
)
from modelinsight.formatting import format_ci, format_percent, format_value
from modelinsight.predicted import PredictionResult, get_predicted
from modelinsight.prototypes import (
    ConfigurationError,
    MissingValueWarning,
    UnsupportedFeatureWarning
)
from modelinsight.transformation import find_transformation, get_transformation

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "MissingValueWarning",
    "ModelFamily",
    "PredictionResult",
    "UnsupportedFeatureWarning",
    "find_family",
    "find_formula",
    "find_response",
    "find_terms",
    "find_transformation",
    "format_ci",
    "format_percent",
    "format_value",
    "get_data",
    "get_predicted",
    "get_transformation",
    "get_weights",
]

_ORIGINAL_SHOWWARNING = warnings.showwarning


def _modelinsight_showwarning(message, category, filename, lineno, file=None, line=None):
    """Format modelinsight warnings without file paths."""
    if issubclass(category, (UnsupportedFeatureWarning, MissingValueWarning)):
        if file is None:
            file = sys.stderr
        try:
            file.write(f"{category.__name__}: {message}\n")
            return
        except OSError:
            pass
    _ORIGINAL_SHOWWARNING(message, category, filename, lineno, file=file, line=line)


def _install_warning_formatter() -> None:
    if warnings.showwarning is not _modelinsight_showwarning:
        warnings.showwarning = _modelinsight_showwarning


_install_warning_formatter()
