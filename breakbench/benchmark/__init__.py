"""
BreakBench v0.1.0

Assembly benchmark and simulation workflows.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from .sweep import SweepCell, build_sweep, first_interesting_cell
from .driver import (
    METRICS_HEADER,
    CoverageMetric,
    MetricsWriter,
    BenchmarkDriver,
    contig_coverage,
    write_metrics,
)
from .sim_breaks import SimBreaksOutput, simulate_breaks

__all__ = [
    'SweepCell',
    'build_sweep',
    'first_interesting_cell',
    'METRICS_HEADER',
    'CoverageMetric',
    'MetricsWriter',
    'BenchmarkDriver',
    'contig_coverage',
    'write_metrics',
    'SimBreaksOutput',
    'simulate_breaks',
]
