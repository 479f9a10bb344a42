"""Data validation utilities for time series tables."""

import numpy as np
import pandas as pd
from typing import Dict, List, Any, Sequence
from dataclasses import dataclass

from ..exceptions import ValidationError, DataError
from ..types import SEPARATOR, ArrayLike


@dataclass
class ValidationResult:
    """Result of data validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    metadata: Dict[str, Any]


def check_time_index(time: ArrayLike, rtol: float = 1e-6) -> ValidationResult:
    """
    Check that a time index is strictly monotonic and regularly spaced.
    
    Parameters
    ----------
    time : array-like
        Time/age values in row order
    rtol : float
        Relative tolerance on the deviation of each step from the first one
        
    Returns
    -------
    result : ValidationResult
        Errors for unusable indices (too short, NaN, zero step), warnings for
        irregular or non-monotonic spacing
    """
    errors = []
    warnings = []
    metadata = {}
    
    values = np.asarray(time, dtype=float)
    
    if values.size < 2:
        errors.append("Time index needs at least two rows")
        return ValidationResult(False, errors, warnings, metadata)
    
    if np.any(np.isnan(values)):
        errors.append(f"Time index contains {int(np.isnan(values).sum())} missing values")
        return ValidationResult(False, errors, warnings, metadata)
    
    steps = np.diff(values)
    step = steps[0]
    metadata['step'] = float(step)
    metadata['n_rows'] = int(values.size)
    
    if step == 0:
        errors.append("First two time values are identical, time resolution is zero")
        return ValidationResult(False, errors, warnings, metadata)
    
    # Monotonicity
    if not (np.all(steps > 0) or np.all(steps < 0)):
        warnings.append("Time index is not strictly monotonic")
    
    # Regular spacing
    deviation = np.abs(steps - step)
    metadata['max_step_deviation'] = float(deviation.max())
    if np.any(deviation > rtol * abs(step)):
        warnings.append(
            f"Time index is not regular: steps range from {steps.min():g} to {steps.max():g}"
        )
    
    return ValidationResult(len(errors) == 0, errors, warnings, metadata)


def validate_variable_names(names: Sequence[str], argument: str = "drivers") -> None:
    """Reject variable names that contain the lag separator."""
    for name in names:
        if SEPARATOR in name:
            raise ValidationError(
                f"Argument {argument}: variable name '{name}' contains the reserved separator '{SEPARATOR}'"
            )


def validate_distinct_names(response: str, drivers: Sequence[str]) -> None:
    """Reject a driver listed twice or a driver that is also the response."""
    seen = set()
    for driver in drivers:
        if driver == response:
            raise ValidationError(
                f"Argument drivers: variable '{driver}' is also the response."
            )
        if driver in seen:
            raise ValidationError(
                f"Argument drivers: variable '{driver}' is listed more than once."
            )
        seen.add(driver)


def validate_time_series(
    data: Any,
    response: Any,
    drivers: Any,
    time: Any,
) -> List[str]:
    """
    Validate a time series table before lagging.
    
    Parameters
    ----------
    data : pd.DataFrame
        Input table with one time series per column
    response : str
        Name of the response column
    drivers : str or sequence of str
        Names of the driver columns
    time : str
        Name of the time column
        
    Returns
    -------
    drivers : List[str]
        Driver names normalised to a list
    """
    if not isinstance(data, pd.DataFrame):
        raise ValidationError("Argument data must be a pandas DataFrame.")
    
    if not isinstance(response, str):
        raise ValidationError("Argument response must be a character string.")
    
    if isinstance(drivers, str):
        drivers = [drivers]
    if drivers is None or len(drivers) == 0 or not all(isinstance(d, str) for d in drivers):
        raise ValidationError("Argument drivers must be a string or a sequence of strings.")
    drivers = list(drivers)
    
    if not isinstance(time, str):
        raise ValidationError("Argument time must be a character string.")
    
    validate_variable_names([response], argument="response")
    validate_variable_names(drivers, argument="drivers")
    validate_distinct_names(response, drivers)
    
    if response not in data.columns:
        raise DataError(f"The response column '{response}' does not exist in data.")
    for driver in drivers:
        if driver not in data.columns:
            raise DataError(f"The driver column '{driver}' does not exist in data.")
    if time not in data.columns:
        raise DataError(f"The time column '{time}' does not exist in data.")
    
    for name in [response, *drivers, time]:
        if not pd.api.types.is_numeric_dtype(data[name]):
            raise ValidationError(f"Column '{name}' must be numeric.")
    
    return drivers
