"""
BreakBench v0.1.0

Parameter sweep enumeration for the assembly benchmark.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import itertools
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from ..config.context import SimulationContext


@dataclass(frozen=True)
class SweepCell:
    """One (trial, correction, coverage, SNV, deletion, insertion) combination."""
    index: int
    trial: int
    corrected: bool
    coverage: float
    snv_rate: float
    deletion_rate: float
    insertion_rate: float

    @property
    def identifier(self) -> str:
        return (f"t{self.trial}_k{int(self.corrected)}_c{self.coverage:g}"
                f"_e{self.snv_rate:g}_d{self.deletion_rate:g}_i{self.insertion_rate:g}")

    def rng(self, seed: int) -> np.random.Generator:
        """Generator seeded from (run seed, cell index), independent of execution order."""
        return np.random.default_rng(np.random.SeedSequence([seed, self.index]))

    def is_interesting(self, context: SimulationContext) -> bool:
        return (self.corrected
                and self.coverage == context.interesting_coverage
                and self.snv_rate == context.interesting_snv_rate)


def build_sweep(context: SimulationContext) -> List[SweepCell]:
    """
    Cartesian product of the sweep axes, in the order
    trial, correction, coverage, SNV rate, deletion rate, insertion rate.
    """
    product = itertools.product(
        range(context.num_runs),
        context.correction_modes,
        context.coverages,
        context.snv_rates,
        context.del_rates,
        context.ins_rates,
    )
    return [
        SweepCell(index, trial, corrected, coverage, snv, dele, ins)
        for index, (trial, corrected, coverage, snv, dele, ins) in enumerate(product)
    ]


def first_interesting_cell(cells: List[SweepCell], context: SimulationContext) -> Optional[SweepCell]:
    return next((cell for cell in cells if cell.is_interesting(context)), None)
