"""
BreakBench v0.1.0

Configuration management for BreakBench.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from .schema import DEFAULT_CONFIG, load_config, save_config_template, validate_config
from .context import (
    SimulationContext,
    InjectorSettings,
    CorrectionSettings,
    AssemblySettings,
    parse_rate_list,
    parse_region,
    resolve_seed,
)

__all__ = [
    "DEFAULT_CONFIG",
    "load_config",
    "save_config_template",
    "validate_config",
    "SimulationContext",
    "InjectorSettings",
    "CorrectionSettings",
    "AssemblySettings",
    "parse_rate_list",
    "parse_region",
    "resolve_seed",
]
