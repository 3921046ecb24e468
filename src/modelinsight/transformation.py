"""modelinsight.transformation

Detection of the transformation applied to the response variable of a
regression formula, e.g. ``np.log(y + 2) ~ x`` is recognised as
``"log(x+2)"``.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from modelinsight.find import find_terms

# prefixes stripped before matching, so that np.log(y) and log(y) agree
_NAMESPACE = re.compile(r"(?<![\w.])(?:numpy|np|math)\.")

_LOG = re.compile(r"(?<![\w.])log\((.*)\)")
_LOG_LOG = re.compile(r"(?<![\w.])log\(\s*log\((.*)\)\s*\)")
_SQRT = re.compile(r"(?<![\w.])sqrt\((.*)\)")
_WRAPPER = re.compile(r"(?<![\w.])I\((.*)\)")
_POWER = (
    re.compile(r"(?<![\w.])I\((.*)(?:\^|\*\*)\s*2\s*\)"),
    re.compile(r"(?<![\w.])square\((.*)\)"),
    re.compile(r"(?<![\w.])power\((.*),\s*2\s*\)"),
)
# checked in this order, a later match overrides an earlier one
_OVERRIDES = (
    ("log1p", re.compile(r"(?<![\w.])log1p\((.*)\)")),
    ("expm1", re.compile(r"(?<![\w.])expm1\((.*)\)")),
    ("log2", re.compile(r"(?<![\w.])log2\((.*)\)")),
    ("log10", re.compile(r"(?<![\w.])log10\((.*)\)")),
    ("exp", re.compile(r"(?<![\w.])exp\((.*)\)")),
)

_TOKEN = re.compile(
    r"\s*(?:(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_.]*)"
    r"|(?P<op>[+-]))"
)
_SHIFTED = re.compile(r"^(log|sqrt)\(x([+-].+)\)$")


def find_transformation(x: Any) -> Optional[str]:
    """
    Find the transformation applied to the response variable of a model.

    Detected patterns are ``log``, ``log1p``, ``log2``, ``log10``, ``exp``,
    ``expm1``, ``sqrt``, ``log(x+<number>)``, ``sqrt(x+<number>)``
    (``log(x-1)`` for a negative shift), ``log-log`` and ``power`` (second
    power, like ``I(y**2)``).

    Parameters
    ----------
    x : fitted model
        A statsmodels results object, or any object exposing a ``formula``.

    Returns
    -------
    str or None
        ``"identity"`` when the response is untransformed, the name of the
        transformation otherwise, or None for unknown transformations and
        objects that are not models.
    """
    terms = find_terms(x)
    if terms is None:
        return None
    return _classify(terms["response"])


def get_transformation(x: Any) -> Optional[Dict[str, Callable[[Any], Any]]]:
    """
    Forward and inverse functions of the response transformation.

    Returns
    -------
    dict or None
        ``{"transformation": f, "inverse": g}`` with numpy callables, or None
        if the transformation is unknown.
    """
    tag = find_transformation(x)
    if tag is None:
        return None

    shifted = _SHIFTED.match(tag)
    if shifted:
        shift = float(shifted.group(2))
        if shifted.group(1) == "log":
            return {"transformation": lambda v: np.log(np.asarray(v) + shift),
                    "inverse": lambda v: np.exp(v) - shift}
        return {"transformation": lambda v: np.sqrt(np.asarray(v) + shift),
                "inverse": lambda v: np.square(v) - shift}

    functions = {
        "identity": (lambda v: v, lambda v: v),
        "log": (np.log, np.exp),
        "log1p": (np.log1p, np.expm1),
        "expm1": (np.expm1, np.log1p),
        "log2": (np.log2, np.exp2),
        "log10": (np.log10, lambda v: np.power(10.0, v)),
        "exp": (np.exp, np.log),
        "sqrt": (np.sqrt, np.square),
        "power": (np.square, np.sqrt),
        "log-log": (lambda v: np.log(np.log(v)), lambda v: np.exp(np.exp(v))),
    }
    forward, inverse = functions[tag]
    return {"transformation": forward, "inverse": inverse}


def _classify(response: str) -> Optional[str]:
    rv = _NAMESPACE.sub("", response)
    transform_fun = "identity"

    # log-transformation
    log_match = _LOG.search(rv)
    if log_match:
        if _LOG_LOG.search(rv):
            transform_fun = "log-log"
        else:
            transform_fun = _shifted_tag("log", _call_argument(rv, log_match))

    for name, pattern in _OVERRIDES:
        if pattern.search(rv):
            transform_fun = name

    # sqrt-transformation
    sqrt_match = _SQRT.search(rv)
    if sqrt_match:
        transform_fun = _shifted_tag("sqrt", _call_argument(rv, sqrt_match))

    # (unknown) I-transformation
    if _WRAPPER.search(rv):
        transform_fun = None

    # power-transformation
    if any(pattern.search(rv) for pattern in _POWER):
        transform_fun = "power"

    return transform_fun


def _shifted_tag(name: str, argument: str) -> str:
    constant = _additive_constant(argument)
    if constant is None or constant == 0:
        return name
    return f"{name}(x{constant:+g})"


def _call_argument(expression: str, match: re.Match) -> str:
    """Text between the opening parenthesis of ``match`` and its partner."""
    start = expression.index("(", match.start()) + 1
    depth = 1
    for pos in range(start, len(expression)):
        if expression[pos] == "(":
            depth += 1
        elif expression[pos] == ")":
            depth -= 1
            if depth == 0:
                return expression[start:pos]
    return expression[start:]


def _additive_constant(argument: str) -> Optional[float]:
    """
    Constant in ``var + k``, ``k + var`` or ``var - k``.

    Only numeric literals, a single variable and ``+``/``-`` are accepted;
    anything else yields None. Nothing is evaluated.
    """
    tokens = _tokenize(argument)
    if tokens is None:
        return None

    constant, n_constants, n_names = 0.0, 0, 0
    sign, expect_operand = 1, True
    for kind, text in tokens:
        if kind == "op":
            if text == "-":
                sign = -sign
            expect_operand = True
            continue
        if not expect_operand:
            return None
        if kind == "number":
            constant += sign * float(text)
            n_constants += 1
        elif sign < 0:
            return None
        else:
            n_names += 1
        sign, expect_operand = 1, False

    if expect_operand or n_names != 1 or n_constants == 0:
        return None
    return constant


def _tokenize(text: str) -> Optional[List[Tuple[str, str]]]:
    tokens, pos = [], 0
    text = text.rstrip()
    while pos < len(text):
        match = _TOKEN.match(text, pos)
        if match is None or match.end() == pos:
            return None
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens
