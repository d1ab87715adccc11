#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BreakBench v0.1.0

Tests for the genomic breakpoint injector and its edit ledger.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
import numpy as np

from breakbench.config.context import InjectorSettings
from breakbench.exceptions import ConfigurationError
from breakbench.external.reference import InMemoryReference
from breakbench.io.io_core_module import write_breakpoint_report, write_indel_ledger
from breakbench.simulation.genome_mutator import (
    BreakpointRecord,
    EditType,
    GenomicBreakpointInjector,
    IndelRecord,
    replay_ledger,
)
from breakbench.utils.intervals import ReferenceInterval


def build(reference, interval, seed, **kwargs):
    injector = GenomicBreakpointInjector(reference, InjectorSettings(), np.random.default_rng(seed))
    return injector.build(interval, **kwargs)


class TestLedgerRecords:
    """Test that each record applies exactly its own edit."""

    def test_forward_rearrangement(self):
        """A '+' join copies the donor segment in at the cut point."""
        record = BreakpointRecord('chr1', cut=2, donor_start=4, donor_end=6, strand='+', post_position=2)
        assert record.apply("AACCGGTT") == "AAGGCCGGTT"
        assert record.size == 2

    def test_reverse_rearrangement(self):
        """A '-' join inserts the reverse complement of the donor."""
        record = BreakpointRecord('chr1', cut=0, donor_start=0, donor_end=3, strand='-', post_position=0)
        assert record.apply("AACGT") == "GTTAACGT"

    def test_insertion_and_deletion(self):
        """Insertions add their bases; deletions drop `length` bases."""
        ins = IndelRecord('chr1', 2, 3, EditType.INSERTION, "GGG")
        dele = IndelRecord('chr1', 1, 2, EditType.DELETION, "CC")
        assert ins.apply("AATT") == "AAGGGTT"
        assert dele.apply("ACCT") == "AT"

    def test_indel_row_fields(self):
        """Ledger rows carry chrom, position, ref position, type, length, sequence."""
        row = IndelRecord('chr1', 10, 2, EditType.DELETION, "AC", ref_position=110).to_row()
        assert row.split('\t') == ['chr1', '10', '110', 'deletion', '2', 'AC']

    def test_replay_applies_in_order(self):
        """Replaying is a left fold of the records."""
        ledger = [
            IndelRecord('chr1', 0, 1, EditType.INSERTION, "G"),
            IndelRecord('chr1', 1, 1, EditType.DELETION, "A"),
        ]
        assert replay_ledger("ACGT", ledger) == "GCGT"


class TestInjector:
    """Test edit placement on a realistic interval."""

    def test_example_scenario(self, reference, interval):
        """9,280 bp, 10 rearrangements, 10 indels, seed 42."""
        genome = build(reference, interval, seed=42, num_rearrangements=10, num_indels=10)

        assert len(genome.reference) == 9280
        assert len(genome.breakpoints) == 10
        assert 0 <= len(genome.indels) <= 10
        assert len(genome.indel_rows()) == len(genome.indels)

    def test_ledger_round_trip(self, reference, interval):
        """Replaying the ledger against the reference reproduces the sequence."""
        genome = build(reference, interval, seed=7)
        assert replay_ledger(genome.reference, genome.ledger) == genome.sequence
        assert genome.verify()

    def test_length_accounts_for_every_edit(self, reference, interval):
        """Final length = reference + joined segments + insertions - deletions."""
        genome = build(reference, interval, seed=11)
        delta = sum(bp.size for bp in genome.breakpoints)
        for indel in genome.indels:
            delta += indel.length if indel.indel_type == EditType.INSERTION else -indel.length
        assert len(genome.sequence) == len(genome.reference) + delta

    def test_determinism(self, reference, interval):
        """Same seed gives identical edits in identical order."""
        first = build(reference, interval, seed=42)
        second = build(reference, interval, seed=42)
        assert first.sequence == second.sequence
        assert first.ledger == second.ledger

    def test_different_seeds_differ(self, reference, interval):
        """Different seeds give different genomes."""
        assert build(reference, interval, seed=1).sequence != build(reference, interval, seed=2).sequence

    def test_reference_coordinates_are_genomic(self, local_sequence):
        """Junction coordinates are reported on the chromosome, not the interval."""
        ref = InMemoryReference({'chr2': 'N' * 1000 + local_sequence})
        genome = build(ref, ReferenceInterval('chr2', 1000, 1000 + len(local_sequence)), seed=5,
                       num_rearrangements=3, num_indels=0)
        for bp in genome.breakpoints:
            for coord in (bp.left_ref, bp.right_ref, bp.donor_ref_start, bp.donor_ref_end):
                assert coord is None or coord >= 1000

    def test_zero_targets(self, reference, interval):
        """No edits requested gives the unchanged reference."""
        genome = build(reference, interval, seed=3, num_rearrangements=0, num_indels=0)
        assert genome.sequence == genome.reference
        assert genome.ledger == ()


class TestInjectorFailureModes:
    """Test graceful degradation."""

    def test_empty_interval_is_fatal(self, reference):
        """An empty reference interval is a configuration error."""
        with pytest.raises(ConfigurationError):
            build(reference, ReferenceInterval('chr17', 100, 100), seed=1)

    def test_short_interval_terminates(self, caplog):
        """A tiny interval gives up after the attempt budget instead of looping."""
        ref = InMemoryReference({'chr1': 'ACGTACGTAC'})
        settings = InjectorSettings(max_attempts=200, max_edit_retries=20)
        injector = GenomicBreakpointInjector(ref, settings, np.random.default_rng(0))

        genome = injector.build(ReferenceInterval('chr1', 0, 10), num_rearrangements=50, num_indels=50)

        assert len(genome.breakpoints) < 50
        assert genome.verify()
        assert 'budget exhausted' in caplog.text


class TestReports:
    """Test ledger and junction report output."""

    def test_indel_ledger_file(self, reference, interval, temp_output_dir):
        """One line per indel record, in ledger order."""
        genome = build(reference, interval, seed=42)
        path = temp_output_dir / "indels.tsv"
        count = write_indel_ledger(genome, path)

        lines = path.read_text().splitlines()
        assert count == len(lines) == len(genome.indels)
        assert lines == [indel.to_row() for indel in genome.indels]

    def test_breakpoint_report(self, reference, interval, temp_output_dir):
        """One entry per rearrangement junction record."""
        genome = build(reference, interval, seed=42)
        path = temp_output_dir / "connections.tsv"
        write_breakpoint_report(genome, path)

        entries = [l for l in path.read_text().splitlines() if l.startswith('BP')]
        assert len(entries) == len(genome.breakpoints)
        assert all('rearrangement' in e and 'chr17:' in e for e in entries)

# BreakBench v0.1.0
# Any usage is subject to this software's license.
