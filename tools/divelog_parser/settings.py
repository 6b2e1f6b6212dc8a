"""
Tool defaults, overridable through environment variables:

    DIVELOG_OUTPUT_DIR=exports python convert_dive.py dive.fit
"""

import os
from dataclasses import dataclass
from typing import Optional

from .analysis import (
    DEFAULT_MODERATE_M_PER_MIN, DEFAULT_FAST_M_PER_MIN, DEFAULT_CRITICAL_M_PER_MIN
)


DEFAULT_PLOT_DPI = 150


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass
class Settings:
    output_dir: Optional[str] = None
    plot_dpi: int = DEFAULT_PLOT_DPI
    ascent_warn_m_per_min: float = DEFAULT_MODERATE_M_PER_MIN
    ascent_limit_m_per_min: float = DEFAULT_FAST_M_PER_MIN
    ascent_critical_m_per_min: float = DEFAULT_CRITICAL_M_PER_MIN

    @classmethod
    def from_env(cls) -> 'Settings':
        return cls(
            output_dir=os.environ.get('DIVELOG_OUTPUT_DIR') or None,
            plot_dpi=int(_env_float('DIVELOG_PLOT_DPI', DEFAULT_PLOT_DPI)),
            ascent_warn_m_per_min=_env_float('DIVELOG_ASCENT_WARN_M_PER_MIN',
                                             DEFAULT_MODERATE_M_PER_MIN),
            ascent_limit_m_per_min=_env_float('DIVELOG_ASCENT_LIMIT_M_PER_MIN',
                                              DEFAULT_FAST_M_PER_MIN),
            ascent_critical_m_per_min=_env_float('DIVELOG_ASCENT_CRITICAL_M_PER_MIN',
                                                 DEFAULT_CRITICAL_M_PER_MIN),
        )
