#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
BreakBench v0.1.0

Tests for sequence manipulation utilities.

Author: BreakBench Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
import numpy as np

from breakbench.utils.sequence_utils import (
    BASES,
    extract_kmers,
    has_ambiguous_bases,
    random_bases,
    reverse_complement,
    substitute_base,
)


class TestKmerExtraction:
    """Test k-mer extraction functions."""

    def test_basic_kmer_extraction(self):
        """Test extraction of k-mers from sequence."""
        kmers = extract_kmers("ATCGATCG", 3)

        expected = ["ATC", "TCG", "CGA", "GAT", "ATC", "TCG"]
        assert kmers == expected

    def test_kmer_count_correct(self):
        """Test that number of k-mers is correct."""
        sequence = "ATCGATCG"  # Length 8

        # Should have (length - k + 1) k-mers
        assert len(extract_kmers(sequence, 3)) == len(sequence) - 3 + 1

    def test_kmer_larger_than_sequence(self):
        """Test handling when k > sequence length."""
        assert extract_kmers("ATG", 5) == []

    def test_lowercase_input(self):
        assert extract_kmers("acgt", 4) == ["ACGT"]


class TestReverseComplement:
    """Test reverse complement function."""

    def test_reverse_complement_simple(self):
        assert reverse_complement("ATCG") == "CGAT"

    def test_reverse_complement_palindrome(self):
        """Test reverse complement of palindromic sequence."""
        assert reverse_complement("GAATTC") == "GAATTC"

    def test_reverse_complement_with_n(self):
        assert reverse_complement("ACNNGT") == "ACNNGT"

    def test_double_reverse_complement(self):
        """Test that double reverse complement returns original."""
        sequence = "ATCGATCGATCG"
        assert reverse_complement(reverse_complement(sequence)) == sequence


class TestRandomBases:
    """Test seeded base generation."""

    @pytest.mark.parametrize("base", BASES)
    def test_substitution_never_returns_same_base(self, base):
        rng = np.random.default_rng(0)
        drawn = {substitute_base(base, rng) for _ in range(200)}
        assert base not in drawn
        assert drawn == set(BASES) - {base}

    def test_substitution_of_n(self):
        rng = np.random.default_rng(0)
        assert substitute_base('N', rng) in BASES

    def test_random_bases_length(self):
        rng = np.random.default_rng(1)
        seq = random_bases(500, rng)
        assert len(seq) == 500
        assert set(seq) <= set(BASES)
        assert random_bases(0, rng) == ''

    def test_random_bases_reproducible(self):
        assert random_bases(50, np.random.default_rng(9)) == random_bases(50, np.random.default_rng(9))

    def test_ambiguous_bases(self):
        assert has_ambiguous_bases("ACGN")
        assert not has_ambiguous_bases("ACGT")

# BreakBench v0.1.0
# Any usage is subject to this software's license.
