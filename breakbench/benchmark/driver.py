"""
BreakBench v0.1.0

Assembly benchmark driver.

For each sweep cell: sample reads from the local reference, align them
back, optionally k-mer correct them, assemble, align the contigs back and
score how much of the local reference the widest merged contig interval
covers. One metrics row per cell.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, TextIO, Tuple

from ..config.context import SimulationContext
from ..correction.kmer_corrector import KmerCorrector
from ..exceptions import ConfigurationError, SamplingExhaustion
from ..external.interfaces import AlignmentRecord, AssemblerConfig, AssemblerEngine, SequenceAligner
from ..io.io_core_module import QualityPool, write_alignments_bam, write_fasta, write_paired_fasta
from ..simulation.read_sampler import ReadSampler, SamplingResult
from ..utils.intervals import merge_intervals, widest_interval
from ..utils.sequence_utils import has_ambiguous_bases
from .sweep import SweepCell, build_sweep, first_interesting_cell

logger = logging.getLogger(__name__)

METRICS_HEADER = "coverage\tnumreads\tnumcontigs\tnumfinal\tcontig_coverage\tkmer_corr\terror_rate"

AssemblerFactory = Callable[[AssemblerConfig], AssemblerEngine]


# ============================================================================
#                           METRICS
# ============================================================================

@dataclass(frozen=True)
class CoverageMetric:
    """
    Result row of one sweep cell.

    deletion_rate, insertion_rate and trial are kept for bookkeeping and are
    not part of the printed row.
    """
    coverage: float
    num_reads: int
    num_contigs: int
    num_merged: int
    contig_coverage: float
    corrected: bool
    snv_rate: float
    deletion_rate: float = 0.0
    insertion_rate: float = 0.0
    trial: int = 0

    def to_row(self) -> str:
        return '\t'.join([
            f"{self.coverage:g}",
            str(self.num_reads),
            str(self.num_contigs),
            str(self.num_merged),
            f"{self.contig_coverage:g}",
            '1' if self.corrected else '0',
            f"{self.snv_rate:g}",
        ])


def contig_coverage(records: Iterable[AlignmentRecord], reference_length: int) -> Tuple[int, float]:
    """
    Merge contig alignment intervals.

    Returns:
        (number of merged intervals, widest merged interval / reference length)
    """
    merged = merge_intervals(r.interval for r in records)
    if reference_length <= 0:
        return len(merged), 0.0
    return len(merged), widest_interval(merged) / reference_length


class MetricsWriter:
    """Tab-separated metrics table, header first."""

    def __init__(self, handle: TextIO):
        self.handle = handle
        self.handle.write(METRICS_HEADER + "\n")

    def write(self, metric: CoverageMetric):
        self.handle.write(metric.to_row() + "\n")
        self.handle.flush()


def write_metrics(metrics: Iterable[CoverageMetric], filepath) -> None:
    with open(filepath, 'w') as f:
        writer = MetricsWriter(f)
        for metric in metrics:
            writer.write(metric)


# ============================================================================
#                           DRIVER
# ============================================================================

class BenchmarkDriver:
    """
    Sweep coverage / error-rate / correction cells through an aligner and
    an assembler.

    Args:
        context: Run configuration
        local_reference: Bases of the local interval; reads are sampled from
            it and everything is aligned back to it
        aligner: Aligner indexed over local_reference
        assembler_factory: Builds an assembler engine per cell
        quality_pool: Quality strings for sampled reads
        reference_name: Name of the local reference in artifacts

    Example:
        driver = BenchmarkDriver(context, local_ref, MappyAligner(local_ref),
                                 assembler_factory("fml-asm -l {min_overlap} {reads}"))
        metrics = driver.run(metrics_path="noid.assembly.tsv")
    """

    def __init__(self, context: SimulationContext, local_reference: str,
                 aligner: SequenceAligner, assembler_factory: AssemblerFactory,
                 quality_pool: Optional[QualityPool] = None,
                 reference_name: str = 'local_ref'):
        if not local_reference:
            raise ConfigurationError("Local reference is empty")
        if len(local_reference) * 2 <= context.read_length:
            raise ConfigurationError(
                f"Read length {context.read_length} too long for a "
                f"{len(local_reference)} bp local reference"
            )
        self.context = context
        self.local_reference = local_reference.upper()
        self.aligner = aligner
        self.assembler_factory = assembler_factory
        self.quality_pool = quality_pool or QualityPool()
        self.reference_name = reference_name
        self.output_dir = Path(context.output_dir)

    def run(self, metrics_path: Optional[Path] = None) -> List[CoverageMetric]:
        """
        Run every sweep cell and return metrics in sweep order.

        With workers > 1 cells run on a thread pool; rows are still written
        in sweep order once all cells are done.
        """
        ctx = self.context
        cells = build_sweep(ctx)
        artifact_cell = first_interesting_cell(cells, ctx) if ctx.write_artifacts else None

        logger.info(f"Assembly benchmark: {len(cells)} cells "
                    f"({ctx.num_runs} runs), {ctx.workers} worker(s)")
        for line in ctx.describe():
            logger.info(f"  {line}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        write_fasta([(self.reference_name, self.local_reference)], self.output_dir / "local_ref.fa")

        if ctx.workers > 1:
            results: Dict[int, CoverageMetric] = {}
            with ThreadPoolExecutor(max_workers=ctx.workers) as executor:
                futures = {
                    executor.submit(self.run_cell, cell, cell == artifact_cell): cell
                    for cell in cells
                }
                for future in as_completed(futures):
                    cell = futures[future]
                    results[cell.index] = future.result()
                    logger.debug(f"Completed cell {cell.identifier}")
            metrics = [results[cell.index] for cell in cells]
        else:
            metrics = []
            for cell in cells:
                if cell.index % max(1, len(cells) // ctx.num_runs) == 0:
                    logger.info(f"...assembly test. Working on iteration {cell.trial} of {ctx.num_runs}")
                metrics.append(self.run_cell(cell, cell == artifact_cell))

        if metrics_path:
            write_metrics(metrics, metrics_path)
            logger.info(f"Wrote {len(metrics)} metrics rows to {metrics_path}")
        return metrics

    def run_cell(self, cell: SweepCell, write_artifacts: bool = False) -> CoverageMetric:
        ctx = self.context
        rng = cell.rng(ctx.seed)

        sampler = ReadSampler(
            read_length=ctx.read_length,
            snv_rate=cell.snv_rate,
            ins_rate=cell.insertion_rate,
            del_rate=cell.deletion_rate,
            rng=rng,
            quality_pool=self.quality_pool,
            max_retries=ctx.max_retries,
            min_yield=ctx.min_yield,
        )
        sampler.add_allele(self.local_reference, 1.0, self.reference_name)

        reads = self._sample(cell, lambda: sampler.sample_reads(cell.coverage))
        queries = [(r.read_id, r.sequence) for r in reads if not has_ambiguous_bases(r.sequence)]
        read_hits = self.aligner.primary_hits(queries)

        if cell.corrected:
            corrector = KmerCorrector.from_settings(ctx.correction)
            read_hits = corrector.correct_alignments(read_hits)
            error_rate = ctx.assembly.error_rate_corrected
        else:
            error_rate = ctx.assembly.error_rate_uncorrected

        engine = self.assembler_factory(AssemblerConfig(
            identifier=cell.identifier,
            error_rate=error_rate,
            min_overlap=ctx.assembly.min_overlap,
            read_length=ctx.read_length,
        ))
        engine.fill_read_table(read_hits)
        engine.perform_assembly()
        contigs = engine.contigs

        contig_hits = [
            record
            for records in self.aligner.align((c.contig_id, c.sequence) for c in contigs).values()
            for record in records
        ]
        num_merged, fraction = contig_coverage(contig_hits, len(self.local_reference))

        metric = CoverageMetric(
            coverage=cell.coverage,
            num_reads=len(read_hits),
            num_contigs=len(contigs),
            num_merged=num_merged,
            contig_coverage=fraction,
            corrected=cell.corrected,
            snv_rate=cell.snv_rate,
            deletion_rate=cell.deletion_rate,
            insertion_rate=cell.insertion_rate,
            trial=cell.trial,
        )
        logger.debug(f"[{cell.identifier}] {metric.to_row()}")

        if write_artifacts:
            # paired set is drawn after the single-end reads so they are unaffected
            pairs = self._sample(cell, lambda: sampler.sample_pairs(
                cell.coverage, ctx.paired_insert_mean, ctx.paired_insert_sd))
            self._write_artifacts(cell, read_hits, contig_hits, pairs)
        return metric

    # ------------------------------------------------------------------------

    def _sample(self, cell: SweepCell, draw: Callable[[], SamplingResult]) -> list:
        try:
            return draw().reads
        except SamplingExhaustion as e:
            logger.warning(f"[{cell.identifier}] {e}; continuing with the partial read set")
            return e.result.reads if e.result is not None else []

    def _write_artifacts(self, cell: SweepCell, read_hits: List[AlignmentRecord],
                         contig_hits: List[AlignmentRecord], pairs: list) -> None:
        out = self.output_dir
        name, length = self.reference_name, len(self.local_reference)
        logger.info(f"Writing inspection artifacts for cell {cell.identifier} to {out}")

        write_alignments_bam(contig_hits, out / "contigs_to_ref.bam", name, length)
        write_paired_fasta(pairs, out / "paired_end1.fa", out / "paired_end2.fa")
        write_alignments_bam(read_hits, out / f"reads_to_ref_{cell.coverage:g}.bam", name, length)
        write_alignments_bam(read_hits, out / "k.bam", name, length, use_corrected=True)
