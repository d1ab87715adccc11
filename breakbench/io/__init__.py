"""
BreakBench v0.1.0

Input/output helpers.
"""

from .io_core_module import (
    QualityPool,
    generate_quality_string,
    open_file,
    write_fasta,
    write_paired_fastq,
    write_paired_fasta,
    write_indel_ledger,
    write_breakpoint_report,
    write_alignments_bam,
)

__all__ = [
    'QualityPool',
    'generate_quality_string',
    'open_file',
    'write_fasta',
    'write_paired_fastq',
    'write_paired_fasta',
    'write_indel_ledger',
    'write_breakpoint_report',
    'write_alignments_bam',
]
