#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BreakBench v0.1.0

Tests for sequence writers, the quality pool and the sim-breaks workflow.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import dataclasses

import pytest
import numpy as np

from breakbench.benchmark.sim_breaks import simulate_breaks
from breakbench.config.context import InjectorSettings
from breakbench.exceptions import ConfigurationError
from breakbench.io.io_core_module import QualityPool, generate_quality_string, open_file, write_fasta


class TestWriters:
    """Test FASTA output."""

    def test_write_fasta_wrapped(self, temp_output_dir):
        path = temp_output_dir / "out.fa"
        count = write_fasta([("a", "ACGTACGT"), ("b", "GG")], path, line_width=4)

        assert count == 2
        assert path.read_text() == ">a\nACGT\nACGT\n>b\nGG\n"

    def test_gzip_round_trip(self, temp_output_dir):
        """.gz outputs are compressed and read back transparently."""
        path = temp_output_dir / "out.fa.gz"
        write_fasta([("a", "ACGT")], path)
        with open_file(path) as f:
            assert f.read() == ">a\nACGT\n"


class TestQualityPool:
    """Test quality strings borrowed from real data."""

    def test_truncate_and_pad(self):
        """Long entries are cut; short ones are padded with their last character."""
        rng = np.random.default_rng(0)
        assert QualityPool(["ABCDEFGH"]).draw(4, rng) == "ABCD"
        assert QualityPool(["AB"]).draw(5, rng) == "ABBBB"

    def test_empty_pool_is_synthetic(self):
        """An empty pool falls back to gaussian Phred+33 qualities."""
        qual = QualityPool().draw(101, np.random.default_rng(1))
        assert len(qual) == 101
        assert all(2 <= ord(c) - 33 <= 40 for c in qual)

    def test_synthetic_reproducible(self):
        assert generate_quality_string(50, np.random.default_rng(3)) == \
            generate_quality_string(50, np.random.default_rng(3))

    def test_from_fastq(self, temp_output_dir):
        path = temp_output_dir / "reads.fastq"
        path.write_text("@a\nACGT\n+\nIIII\n@b\nAC\n+\n#5\n")
        pool = QualityPool.from_fastq(path)

        assert len(pool) == 2
        assert pool.qualities == ["IIII", "#5"]

    def test_from_path_none(self):
        assert len(QualityPool.from_path(None)) == 0

    @pytest.mark.parametrize("name", ["missing.fastq", "missing.bam"])
    def test_missing_quality_file(self, temp_output_dir, name):
        """A missing quality source is a configuration error."""
        with pytest.raises(ConfigurationError):
            QualityPool.from_path(temp_output_dir / name)

    def test_from_bam(self, temp_output_dir):
        """Qualities come back as Phred+33 strings; unindexed BAMs are streamed."""
        pysam = pytest.importorskip("pysam")
        from breakbench.utils.intervals import ReferenceInterval

        path = temp_output_dir / "q.bam"
        header = {'HD': {'VN': '1.6'}, 'SQ': [{'SN': 'chr1', 'LN': 5000}]}
        with pysam.AlignmentFile(str(path), 'wb', header=header) as bam:
            seg = pysam.AlignedSegment(bam.header)
            seg.query_name = "q1"
            seg.reference_id = 0
            seg.reference_start = 10
            seg.cigarstring = "4M"
            seg.query_sequence = "ACGT"
            seg.query_qualities = pysam.qualitystring_to_array("I#5A")
            bam.write(seg)

        pool = QualityPool.from_bam(path, regions=[ReferenceInterval('chr1', 0, 100)])
        assert pool.qualities == ["I#5A"]
        # 5 kb reference is too short for 1 Mb-spaced windows
        assert QualityPool.training_regions(path) == []


class TestSimBreaks:
    """Test the sim-breaks workflow on an in-memory reference."""

    def test_outputs(self, small_context, reference, interval):
        ctx = dataclasses.replace(
            small_context, region=interval, coverages=(10.0,),
            injector=InjectorSettings(num_rearrangements=3, num_indels=4),
        )
        result = simulate_breaks(ctx, reference)
        out = ctx.output_dir

        assert result.genome.verify()
        assert result.num_pairs > 0

        ledger = (out / "indels.tsv").read_text().splitlines()
        assert len(ledger) == len(result.genome.indels)

        r1 = (out / "paired_end1.fastq").read_text().splitlines()
        r2 = (out / "paired_end2.fastq").read_text().splitlines()
        assert r1[0] == "@r0" and r2[0] == "@r0"
        assert len(r1) == len(r2) == 4 * result.num_pairs
        assert all(len(seq) == len(qual) for seq, qual in zip(r1[1::4], r1[3::4]))

        report = (out / "connections.tsv").read_text().splitlines()
        assert report[0].startswith("#")
        assert len(report) == 1 + len(result.genome.breakpoints)

    def test_deterministic(self, small_context, reference, interval, temp_output_dir):
        """Same seed gives the same reads."""
        texts = []
        for name in ("a", "b"):
            ctx = dataclasses.replace(small_context, region=interval, coverages=(5.0,),
                                      output_dir=temp_output_dir / name)
            simulate_breaks(ctx, reference)
            texts.append((temp_output_dir / name / "paired_end1.fastq").read_text())
        assert texts[0] == texts[1]

    def test_requires_region(self, small_context, reference):
        with pytest.raises(ConfigurationError):
            simulate_breaks(small_context, reference)

# BreakBench v0.1.0
# Any usage is subject to this software's license.
