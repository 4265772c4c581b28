"""
Tests for the congestion score.
"""

import numpy as np
import pytest

from structure_layout.congestion import BONDED, Congestion
from structure_layout.parameters import RefinerParameters


@pytest.fixture
def scattered():
    """Ten atoms in a chain with random positions."""
    rng = np.random.default_rng(7)
    coords = rng.uniform(-3, 3, size=(10, 2))
    adjacency = [[] for _ in range(10)]
    for i in range(9):
        adjacency[i].append(i + 1)
        adjacency[i + 1].append(i)
    return coords, adjacency


class TestCongestion:
    """Tests for the congestion matrix."""

    def test_bonded_pairs_are_excluded(self, scattered):
        """Test bonded and identical pairs hold the sentinel."""
        coords, adjacency = scattered
        congestion = Congestion(coords, adjacency)
        assert congestion.contribution(0, 1) == BONDED
        assert congestion.contribution(3, 3) == BONDED
        assert congestion.contribution(0, 5) > 0

    def test_contribution_formula(self):
        """Test 1/d² with the minimum distance floor."""
        coords = np.array([[0.0, 0.0], [2.0, 0.0], [0.1, 0.0]])
        congestion = Congestion(coords, [[], [], []], min_dist=0.5)
        assert congestion.contribution(0, 1) == pytest.approx(0.25)
        assert congestion.contribution(0, 2) == pytest.approx(4.0)
        assert congestion.score == pytest.approx(0.25 + 4.0 + 1 / 1.9 ** 2)

    def test_incremental_update_matches_full(self, scattered):
        """Test updating moved atoms gives the full recomputation."""
        coords, adjacency = scattered
        congestion = Congestion(coords, adjacency)
        coords[[2, 5, 6]] += np.array([0.7, -1.1])
        congestion.update([2, 5, 6])
        reference = Congestion(coords.copy(), adjacency)
        assert congestion.score == pytest.approx(reference.score)
        np.testing.assert_allclose(congestion.matrix, reference.matrix)

    def test_rigid_update_matches_full(self, scattered):
        """Test rigid motions keep cells inside the moved set."""
        coords, adjacency = scattered
        congestion = Congestion(coords, adjacency)
        coords[[4, 5, 6]] += np.array([1.5, 0.5])
        congestion.update([4, 5, 6], rigid=True)
        assert congestion.score == pytest.approx(Congestion(coords.copy(), adjacency).score)
        assert congestion.score == pytest.approx(congestion.recomputed_total())

    def test_empty_update(self, scattered):
        """Test an update without moved atoms keeps the score."""
        coords, adjacency = scattered
        congestion = Congestion(coords, adjacency)
        before = congestion.score
        assert congestion.update([]) == before

    def test_single_atom(self):
        """Test a lone atom has no congestion."""
        congestion = Congestion(np.zeros((1, 2)), [[]])
        assert congestion.total() == 0.0


class TestRefinerParameters:
    """Tests for the refiner settings."""

    def test_scaled_with_bond_length(self):
        """Test distances scale with the bond length."""
        params = RefinerParameters.for_bond_length(1.0)
        assert params.bond_length == 1.0
        assert params.crossing_score == pytest.approx(1 / (4 / 3) ** 2)

    def test_invalid_bond_length(self):
        """Test non-positive bond lengths are rejected."""
        with pytest.raises(ValueError):
            RefinerParameters.for_bond_length(0)
