#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BreakBench v0.1.0

Tests for fraction-proportional read partitioning.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
from click.testing import CliRunner

from breakbench.cli import main
from breakbench.exceptions import ConfigurationError
from breakbench.simulation.read_splitter import (
    NameBucketer,
    RegionFractions,
    fractionate_bam,
    name_draw,
    partition_read_names,
    split_bam,
)
from breakbench.utils.intervals import ReferenceInterval


def paired_names(n):
    """Read names as they appear in a name-sorted paired BAM (each twice)."""
    names = []
    for i in range(n):
        names.extend([f"pair{i}", f"pair{i}"])
    return names


def write_pairs_bam(pysam, path, n, spacing=50, insert=200):
    """Coordinate-ordered BAM of n pairs; mate 2 starts `insert` bases after mate 1."""
    header = {'HD': {'VN': '1.6'}, 'SQ': [{'SN': 'chr1', 'LN': 100000}]}
    with pysam.AlignmentFile(str(path), 'wb', header=header) as bam:
        for i in range(n):
            start = i * spacing
            for mate in (1, 2):
                seg = pysam.AlignedSegment(bam.header)
                seg.query_name = f"pair{i}"
                seg.reference_id = 0
                seg.reference_start = start + (insert if mate == 2 else 0)
                seg.next_reference_id = 0
                seg.next_reference_start = start + (0 if mate == 2 else insert)
                seg.cigarstring = "10M"
                seg.query_sequence = "ACGTACGTAC"
                seg.is_paired = True
                seg.is_read1 = mate == 1
                seg.is_read2 = mate == 2
                bam.write(seg)


def read_names(pysam, path):
    with pysam.AlignmentFile(str(path), 'rb') as bam:
        return [r.query_name for r in bam.fetch(until_eof=True)]


class TestPartition:
    """Test name-based partitioning."""

    def test_disjoint_and_pair_preserving(self):
        """No name lands in two buckets; mates share a bucket by construction."""
        buckets = partition_read_names(paired_names(2000), [0.2, 0.3], seed=1)
        seen = set()
        for bucket in buckets:
            assert len(bucket) == len(set(bucket))
            assert not seen & set(bucket)
            seen.update(bucket)

    def test_sizes_proportional(self):
        """Bucket sizes follow the fractions within sampling tolerance."""
        n = 20000
        fractions = [0.1, 0.25, 0.5]
        buckets = partition_read_names(paired_names(n), fractions, seed=7)
        for fraction, bucket in zip(fractions, buckets):
            assert abs(len(bucket) / n - fraction) < 0.02

    def test_fractions_summing_to_one(self):
        """With fractions summing to 1 every name is assigned."""
        buckets = partition_read_names(paired_names(500), [0.5, 0.5], seed=3)
        assert sum(len(b) for b in buckets) == 500

    def test_deterministic(self):
        """Same seed gives the same partition; another seed a different one."""
        names = paired_names(300)
        first = partition_read_names(names, [0.3, 0.3], seed=5)
        assert first == partition_read_names(names, [0.3, 0.3], seed=5)
        assert first != partition_read_names(names, [0.3, 0.3], seed=6)

    def test_assignment_is_stateless(self):
        """A name maps to the same bucket from any bucketer with the same seed."""
        a = NameBucketer([0.4, 0.4], seed=9)
        b = NameBucketer([0.4, 0.4], seed=9)
        for i in range(200):
            assert a.assign(f"read{i}") == b.assign(f"read{i}")
        assert not hasattr(a, '_assigned')

    def test_name_draw_range(self):
        draws = [name_draw(f"n{i}", 0) for i in range(1000)]
        assert all(0.0 <= d < 1.0 for d in draws)
        assert 0.4 < sum(draws) / len(draws) < 0.6

    @pytest.mark.parametrize("fractions", [[0.6, 0.6], [-0.1, 0.5], []])
    def test_invalid_fractions(self, fractions):
        """Negative fractions, sums above 1 and empty lists are rejected."""
        with pytest.raises(ConfigurationError):
            partition_read_names(["a"], fractions, seed=0)


class TestSplitBam:
    """Test streaming a BAM into fraction buckets."""

    def test_split_bam(self, temp_output_dir):
        """Pairs stay together and no record is written twice."""
        pysam = pytest.importorskip("pysam")
        source = temp_output_dir / "in.bam"
        write_pairs_bam(pysam, source, 1000)

        outputs = [temp_output_dir / "a.bam", temp_output_dir / "b.bam"]
        counts = split_bam(source, [0.3, 0.4], outputs, seed=11)

        names = []
        for path, count in zip(outputs, counts):
            reads = read_names(pysam, path)
            assert len(reads) == count
            # every name appears exactly twice (both mates)
            assert all(reads.count(name) == 2 for name in set(reads))
            names.append(set(reads))

        assert not names[0] & names[1]
        assert abs(len(names[0]) / 1000 - 0.3) < 0.06
        assert abs(len(names[1]) / 1000 - 0.4) < 0.06

    def test_output_count_mismatch(self, temp_output_dir):
        """One output path is needed per fraction."""
        with pytest.raises(ConfigurationError):
            split_bam(temp_output_dir / "missing.bam", [0.5], [], seed=1)


class TestRegionFractions:
    """Test per-region keep fractions."""

    def test_lookup(self):
        fractions = RegionFractions([
            (ReferenceInterval('chr1', 300, 400), 0.0),
            (ReferenceInterval('chr1', 100, 200), 0.5),
        ])
        assert fractions.fraction_at('chr1', 150) == 0.5
        assert fractions.fraction_at('chr1', 350) == 0.0
        assert fractions.fraction_at('chr1', 200) == 1.0
        assert fractions.fraction_at('chr2', 150) == 1.0

    def test_from_bed(self, temp_output_dir):
        bed = temp_output_dir / "frac.bed"
        bed.write_text("track name=x\nchr1\t0\t1000\t0.25\nchr2\t10\t20\t1\n")
        fractions = RegionFractions.from_bed(bed)
        assert len(fractions) == 2
        assert fractions.fraction_at('chr1', 999) == 0.25

    @pytest.mark.parametrize("text", ["chr1\t0\t100\n", "chr1\t0\t100\tabc\n", "chr1\t0\t100\t1.5\n", ""])
    def test_invalid_bed(self, temp_output_dir, text):
        """Rows need a fourth column holding a fraction in [0, 1]."""
        bed = temp_output_dir / "bad.bed"
        bed.write_text(text)
        with pytest.raises(ConfigurationError):
            RegionFractions.from_bed(bed)


class TestFractionateBam:
    """Test writing one BAM subsampled per region."""

    def regions(self):
        # pairs 0-499 start in the first region, 500-749 in the second, the rest in neither
        return RegionFractions([
            (ReferenceInterval('chr1', 0, 25000), 0.3),
            (ReferenceInterval('chr1', 25000, 37500), 0.0),
        ])

    def test_fractions_per_region(self, temp_output_dir):
        pysam = pytest.importorskip("pysam")
        source = temp_output_dir / "in.bam"
        write_pairs_bam(pysam, source, 1000)

        output = temp_output_dir / "noid.fractioned.bam"
        written = fractionate_bam(source, self.regions(), output, seed=3)

        reads = read_names(pysam, output)
        assert len(reads) == written
        kept = {int(name[4:]) for name in reads}
        # mates straddling a region end follow the leftmost mate
        assert all(reads.count(name) == 2 for name in set(reads))
        assert not any(500 <= i < 750 for i in kept)
        assert set(range(750, 1000)) <= kept
        assert abs(sum(1 for i in kept if i < 500) / 500 - 0.3) < 0.08

    def test_deterministic(self, temp_output_dir):
        pysam = pytest.importorskip("pysam")
        source = temp_output_dir / "in.bam"
        write_pairs_bam(pysam, source, 300)

        outputs = [temp_output_dir / "a.bam", temp_output_dir / "b.bam"]
        for path in outputs:
            fractionate_bam(source, self.regions(), path, seed=8)
        assert read_names(pysam, outputs[0]) == read_names(pysam, outputs[1])

    def test_cli_fraction_bed(self, temp_output_dir):
        """A readable file passed to -f selects the per-region mode."""
        pysam = pytest.importorskip("pysam")
        source = temp_output_dir / "in.bam"
        write_pairs_bam(pysam, source, 200)
        bed = temp_output_dir / "frac.bed"
        bed.write_text("chr1\t0\t100000\t0.5\n")

        result = CliRunner().invoke(main, [
            'split-bam', '-b', str(source), '-f', str(bed), '-s', '4',
            '-A', 'tumor', '-o', str(temp_output_dir),
        ])

        assert result.exit_code == 0, result.output
        output = temp_output_dir / "tumor.fractioned.bam"
        assert output.exists()
        assert 0 < len(read_names(pysam, output)) < 400

# BreakBench v0.1.0
# Any usage is subject to this software's license.
