"""modelinsight.formatting

Conversion of numeric values into display strings for reports: fixed and
scientific notation, significant figures, percentages, and confidence
interval labels.
"""

from __future__ import annotations

import numbers
import re
from typing import Any, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

DEFAULT_DIGITS = 2
SCIENTIFIC_DEFAULT_DIGITS = 5
SIGNIF_DEFAULT_DIGITS = 3
SCIENTIFIC_THRESHOLD = 1e5

_NEGATIVE_ZERO = re.compile(r"^-0(\.0+)?%?$")


def format_value(
    x: Any,
    digits: Union[int, str] = DEFAULT_DIGITS,
    protect_integers: bool = False,
    missing: Optional[str] = "",
    width: Optional[int] = None,
    as_percent: bool = False,
    zap_small: bool = False,
) -> Any:
    """
    Convert numeric values into formatted strings.

    Parameters
    ----------
    x : scalar, sequence, numpy.ndarray, pandas.Series or pandas.DataFrame
        Values to format. Data frames are formatted column by column.
    digits : int or str, default=2
        Number of decimal places. May also be ``"scientific"`` for scientific
        notation or ``"signif"`` for significant figures; the number of
        digits is controlled by a suffix, e.g. ``"scientific4"`` or
        ``"signif5"``.
    protect_integers : bool, default=False
        Keep integers as integers (without decimals) when every non-missing
        value is integral.
    missing : str or None, default=""
        Replacement for missing values. ``None`` keeps them missing.
    width : int, optional
        Minimum width of the returned strings; shorter strings are padded
        with leading whitespace.
    as_percent : bool, default=False
        Format values as percentages.
    zap_small : bool, default=False
        If True, small values are rounded after ``digits`` decimal places
        instead of being printed in scientific notation.

    Returns
    -------
    str, list of str, pandas.Series or pandas.DataFrame
        Same container kind as ``x``: a string for a scalar, a list for other
        sequences.

    Examples
    --------
    >>> format_value([0.0045, 234, -23])
    ['4.50e-03', '234.00', '-23.00']
    >>> format_value(3, protect_integers=True)
    '3'
    """
    options = dict(
        digits=digits,
        protect_integers=protect_integers,
        missing=missing,
        width=width,
        as_percent=as_percent,
        zap_small=zap_small,
    )
    if isinstance(x, pd.DataFrame):
        return x.apply(format_value, **options)
    if isinstance(x, pd.Series):
        return pd.Series(
            _format_values(x.tolist(), **options),
            index=x.index,
            name=x.name,
            dtype=object,
        )
    if x is None or np.ndim(x) == 0:
        return _format_values([x], **options)[0]
    return _format_values(list(np.asarray(x, dtype=object).ravel()), **options)


def format_percent(x: Any, **kwargs) -> Any:
    """Shortcut for ``format_value(x, as_percent=True, ...)``."""
    kwargs["as_percent"] = True
    return format_value(x, **kwargs)


def format_ci(
    low: Any,
    high: Any,
    ci: Optional[float] = 0.95,
    digits: Union[int, str] = DEFAULT_DIGITS,
    width: Optional[int] = None,
    missing: Optional[str] = "",
    brackets: Tuple[str, str] = ("[", "]"),
    **kwargs
) -> Union[str, List[Optional[str]]]:
    """
    Format confidence intervals as ``"95% CI [low, high]"``.

    Parameters
    ----------
    low, high : scalar or sequence
        Lower and upper interval bounds.
    ci : float, optional
        Confidence level used for the prefix. None omits the prefix.
    digits, width, missing
        Passed on to :func:`format_value` for each bound.
    brackets : tuple of str, default=("[", "]")
        Opening and closing brackets.

    Returns
    -------
    str or list of str
        One label per interval; a string when both bounds are scalars.
    """
    scalar = np.ndim(low) == 0 and np.ndim(high) == 0
    lows = np.atleast_1d(np.asarray(low, dtype=object)).ravel()
    highs = np.atleast_1d(np.asarray(high, dtype=object)).ravel()
    if len(lows) != len(highs):
        raise ValueError("`low` and `high` must have the same length.")

    low_str = format_value(list(lows), digits=digits, width=width, missing=None, **kwargs)
    high_str = format_value(list(highs), digits=digits, width=width, missing=None, **kwargs)
    prefix = "" if ci is None else f"{ci * 100:g}% CI "
    missing_marker = None if _is_missing(missing) else str(missing)

    out = []
    for lo, hi in zip(low_str, high_str):
        if lo is None or hi is None:
            out.append(missing_marker)
        else:
            out.append(f"{prefix}{brackets[0]}{lo}, {hi}{brackets[1]}")
    return out[0] if scalar else out


def _format_values(
    values: list,
    digits: Union[int, str],
    protect_integers: bool,
    missing: Optional[str],
    width: Optional[int],
    as_percent: bool,
    zap_small: bool,
) -> List[Optional[str]]:
    missing_marker = None if _is_missing(missing) else str(missing)
    present = [v for v in values if not _is_missing(v)]
    numeric = all(_is_number(v) for v in present)

    if numeric and protect_integers and all(_is_integral(v) for v in present):
        out = [missing_marker if _is_missing(v) else str(int(v)) for v in values]
    elif numeric:
        mode, n_digits = _parse_digits(digits)
        out = [
            missing_marker if _is_missing(v)
            else _format_number(float(v), mode, n_digits, as_percent, zap_small)
            for v in values
        ]
    else:
        out = [missing_marker if _is_missing(v) else str(v) for v in values]

    out = [_positive_zero(s, width) for s in out]
    if width is not None:
        out = [s if s is None else s.rjust(width) for s in out]
    return out


def _format_number(
    value: float,
    mode: str,
    n_digits: int,
    as_percent: bool,
    zap_small: bool
) -> str:
    if as_percent:
        value = 100 * value

    if mode == "scientific":
        text = "%.*e" % (n_digits, value)
    elif mode == "signif":
        text = _signif(value, n_digits)
    else:
        need_sci = value != 0 and (
            abs(value) >= SCIENTIFIC_THRESHOLD or np.log10(abs(value)) < -n_digits
        )
        if need_sci and not zap_small:
            text = "%.*e" % (n_digits, value)
        else:
            text = "%.*f" % (n_digits, value)

    if as_percent:
        text += "%"
    return text


def _parse_digits(digits: Union[int, str]) -> Tuple[str, int]:
    """
    Split a digits argument into a rendering mode and a digit count.

    Unparseable suffixes of ``"scientific"`` and ``"signif"`` fall back to
    the module defaults.
    """
    if isinstance(digits, str):
        for mode, default in (("scientific", SCIENTIFIC_DEFAULT_DIGITS),
                              ("signif", SIGNIF_DEFAULT_DIGITS)):
            if mode in digits:
                suffix = digits.replace(mode, "").strip()
                try:
                    return mode, int(suffix)
                except ValueError:
                    return mode, default
        try:
            return "fixed", int(digits)
        except ValueError:
            raise ValueError(
                f"`digits` must be an integer, 'scientific<N>' or 'signif<N>'. Received: {digits!r}."
            )
    return "fixed", int(digits)


def _signif(value: float, n_digits: int) -> str:
    # Round to significant figures, print without trailing zeros.
    if not np.isfinite(value):
        return str(value)
    text = repr(float(f"{value:.{max(n_digits, 1)}g}"))
    if text.endswith(".0"):
        text = text[:-2]
    return text


def _positive_zero(text: Optional[str], width: Optional[int]) -> Optional[str]:
    if text is not None and _NEGATIVE_ZERO.match(text):
        return (" " if width is not None else "") + text[1:]
    return text


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    try:
        return bool(np.ndim(value) == 0 and pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (numbers.Real, np.number)) and not isinstance(value, (bool, np.bool_))


def _is_integral(value: Any) -> bool:
    return bool(np.isfinite(value)) and float(value).is_integer()
