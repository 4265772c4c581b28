"""
Tests for chain and substituent placement.
"""

import math

import numpy as np
import pytest

from structure_layout.atom_placer import AtomPlacer
from structure_layout.io import from_smiles
from structure_layout.layout_state import LayoutState
from structure_layout.molecule import BondOrder, Molecule


def _placer(mol):
    state = LayoutState.for_molecule(mol)
    return state, AtomPlacer(mol, state, 1.5)


def _cross(u, v):
    return u[0] * v[1] - u[1] * v[0]


def _angle_at(coords, a, b, c):
    u = coords[a] - coords[b]
    v = coords[c] - coords[b]
    return math.degrees(math.acos(np.dot(u, v) / (np.linalg.norm(u) * np.linalg.norm(v))))


class TestChains:
    """Tests for linear chain placement."""

    def test_zigzag(self, make_chain):
        """Test chains alternate sides with 120° angles."""
        mol = make_chain(6)
        state, placer = _placer(mol)
        state.place(0, (0.0, 0.0))
        placer.place_linear_chain(list(range(6)), np.array([1.0, 0.0]))
        coords = state.coords
        for i in range(5):
            assert np.linalg.norm(coords[i + 1] - coords[i]) == pytest.approx(1.5)
        for i in range(1, 5):
            assert _angle_at(coords, i - 1, i, i + 1) == pytest.approx(120.0)
        # trans: atoms i-1 and i+2 on opposite sides of bond i, i+1
        for i in range(1, 4):
            axis = coords[i + 1] - coords[i]
            side_a = _cross(axis, coords[i - 1] - coords[i])
            side_b = _cross(axis, coords[i + 2] - coords[i])
            assert side_a * side_b < 0

    def test_triple_bond_is_straight(self):
        """Test sp centres continue straight."""
        mol = from_smiles("CC#CC")
        state, placer = _placer(mol)
        state.place(0, (0.0, 0.0))
        placer.place_linear_chain([0, 1, 2, 3], np.array([1.0, 0.0]))
        assert _angle_at(state.coords, 0, 1, 2) == pytest.approx(180.0)
        assert _angle_at(state.coords, 1, 2, 3) == pytest.approx(180.0)

    def test_colinear(self):
        """Test triple bonds and cumulated double bonds are colinear."""
        allene = Molecule()
        for _ in range(3):
            allene.add_atom("C")
        allene.add_bond(0, 1, BondOrder.DOUBLE)
        allene.add_bond(1, 2, BondOrder.DOUBLE)
        _, placer = _placer(allene)
        assert placer.is_colinear(1)
        assert not placer.is_colinear(0)

    def test_initial_longest_chain(self):
        """Test the longest path runs between terminal atoms."""
        mol = from_smiles("CC(C)CCCC")
        _, placer = _placer(mol)
        path = placer.initial_longest_chain()
        assert len(path) == 6
        assert len(mol.adjacency_list()[path[0]]) == 1
        assert len(mol.adjacency_list()[path[-1]]) == 1

    def test_longest_unplaced_chain(self, make_chain):
        """Test the chain search starts at a placed atom."""
        mol = make_chain(5)
        state, placer = _placer(mol)
        state.place(0, (0.0, 0.0))
        assert placer.longest_unplaced_chain(0) == [0, 1, 2, 3, 4]

    def test_unplaced_chain_stops_at_ring(self, ethylbenzene):
        """Test the search does not run through ring atoms."""
        state, placer = _placer(ethylbenzene)
        state.in_ring[2:] = True
        state.place(0, (0.0, 0.0))
        chain = placer.longest_unplaced_chain(0)
        assert chain == [0, 1, 2]


class TestDistributePartners:
    """Tests for placing substituents around an atom."""

    def test_no_placed_neighbours(self):
        """Test neighbours spread evenly around a lone atom."""
        mol = from_smiles("C(C)(C)(C)C")
        state, placer = _placer(mol)
        state.place(0, (0.0, 0.0))
        placer.distribute_partners(0, [], np.zeros(2), [1, 2, 3, 4])
        coords = state.coords
        np.testing.assert_allclose(np.linalg.norm(coords[1:], axis=1), 1.5)
        for i in range(1, 4):
            assert _angle_at(coords, i, 0, i + 1) == pytest.approx(90.0)

    def test_one_placed_neighbour(self):
        """Test a single substituent goes at 120° away from the centre."""
        mol = from_smiles("CCC")
        state, placer = _placer(mol)
        state.place(0, (0.0, 0.0))
        state.place(1, (1.5, 0.0))
        placer.distribute_partners(1, [0], np.array([0.0, 1.0]), [2])
        assert _angle_at(state.coords, 0, 1, 2) == pytest.approx(120.0)
        assert state.coords[2][1] < 0

    def test_two_placed_neighbours(self):
        """Test the substituent points into the free gap."""
        mol = from_smiles("CC(C)C")
        state, placer = _placer(mol)
        state.place(1, (0.0, 0.0))
        state.place(0, (-1.3, 0.75))
        state.place(2, (1.3, 0.75))
        placer.distribute_partners(1, [0, 2], np.array([0.0, 0.75]), [3])
        np.testing.assert_allclose(state.coords[3], [0.0, -1.5], atol=1e-9)


class TestPrioritise:
    """Tests for centrality ranks."""

    def test_centre_ranks_first(self, make_chain):
        """Test the middle of a chain is the most central atom."""
        mol = make_chain(5)
        state, placer = _placer(mol)
        priority = placer.prioritise()
        assert priority[2] == 1
        assert priority[0] == priority[4]
        assert priority[0] > priority[1]
        np.testing.assert_array_equal(state.priority, priority)
