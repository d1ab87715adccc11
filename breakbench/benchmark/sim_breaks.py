"""
BreakBench v0.1.0

sim-breaks workflow: mutate a region, simulate paired-end reads from it and
write the ground truth next to the reads.

Outputs (in the output directory):
    indels.tsv            indel ledger, one row per IndelRecord
    paired_end1.fastq     read 1 of each pair (@r<index>)
    paired_end2.fastq     read 2 of each pair
    connections.tsv       rearrangement junction report

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

from ..config.context import SimulationContext
from ..exceptions import ConfigurationError, SamplingExhaustion
from ..external.interfaces import ReferenceAccessor
from ..io.io_core_module import QualityPool, write_breakpoint_report, write_indel_ledger, write_paired_fastq
from ..simulation.genome_mutator import GenomicBreakpointInjector, MutatedGenome
from ..simulation.read_sampler import ReadSampler

logger = logging.getLogger(__name__)

FOLLOW_UP_COMMAND = (
    "bwa mem $REF paired_end1.fastq paired_end2.fastq > sim.sam && "
    "samtools view sim.sam -Sb > tmp.bam && samtools sort -m 4G tmp.bam -o sim.bam && "
    "rm sim.sam tmp.bam && samtools index sim.bam"
)


@dataclass
class SimBreaksOutput:
    """Paths and ground truth produced by a sim-breaks run."""
    genome: MutatedGenome
    num_pairs: int
    indel_ledger: Path
    read1: Path
    read2: Path
    breakpoint_report: Path


def simulate_breaks(context: SimulationContext, reference: ReferenceAccessor,
                    quality_pool: Optional[QualityPool] = None) -> SimBreaksOutput:
    """
    Run the sim-breaks workflow.

    Reads are sampled at the first coverage / error-rate values of the
    context, with the context's insert size.

    Raises:
        ConfigurationError: No region configured, or the region is empty
    """
    if context.region is None:
        raise ConfigurationError("Must input a region to run on")

    rng = np.random.default_rng(context.seed)
    injector = GenomicBreakpointInjector(reference, context.injector, rng)
    genome = injector.build(context.region)

    out = Path(context.output_dir)
    out.mkdir(parents=True, exist_ok=True)
    indel_path = out / "indels.tsv"
    write_indel_ledger(genome, indel_path)

    coverage = context.coverages[0]
    snv, ins, dele = context.snv_rates[0], context.ins_rates[0], context.del_rates[0]
    logger.info(f"Simulating reads at coverage of {coverage:g} del rate {dele:g} ins rate {ins:g} "
                f"snv-rate {snv:g} isize {context.insert_mean}({context.insert_sd})")

    sampler = ReadSampler(
        read_length=context.read_length,
        snv_rate=snv,
        ins_rate=ins,
        del_rate=dele,
        rng=rng,
        quality_pool=quality_pool,
        max_retries=context.max_retries,
        min_yield=context.min_yield,
    )
    sampler.add_allele(genome.sequence, 1.0, 'mutated')
    try:
        pairs = sampler.sample_pairs(coverage, context.insert_mean, context.insert_sd).reads
    except SamplingExhaustion as e:
        logger.warning(f"{e}; writing the pairs that could be placed")
        pairs = e.result.reads if e.result is not None else []

    read1, read2 = out / "paired_end1.fastq", out / "paired_end2.fastq"
    write_paired_fastq(pairs, read1, read2)

    report_path = out / "connections.tsv"
    write_breakpoint_report(genome, report_path)

    logger.info(f"Suggest running:\n{FOLLOW_UP_COMMAND}")
    return SimBreaksOutput(genome, len(pairs), indel_path, read1, read2, report_path)
