"""
Tests for ring perception and ring placement.

Tests cover:
- Ring perception and ring systems
- Polygon radius and regular polygons
- Fused and spiro placement
"""

import math

import numpy as np
import pytest

from structure_layout.atom_placer import AtomPlacer
from structure_layout.io import from_smiles
from structure_layout.layout_state import LayoutState
from structure_layout.ring_placer import FUSED, SPIRO, RingPlacer, ring_radius
from structure_layout.rings import (
    find_rings,
    is_macrocycle,
    mark_ring_membership,
    most_complex_ring,
    partition_rings,
    ring_system_atoms,
)


def _placers(mol):
    state = LayoutState.for_molecule(mol)
    atom_placer = AtomPlacer(mol, state, 1.5)
    return state, RingPlacer(mol, state, atom_placer)


def _ring_edges(coords, ring):
    return [
        np.linalg.norm(coords[ring.atoms[i]] - coords[ring.atoms[(i + 1) % ring.size]])
        for i in range(ring.size)
    ]


class TestRingPerception:
    """Tests for finding rings and ring systems."""

    def test_acyclic(self, butane):
        """Test chains have no rings."""
        assert find_rings(butane) == []

    def test_ring_bonds_follow_atoms(self, naphthalene):
        """Test bond i joins atoms i and i+1 of each ring."""
        for ring in find_rings(naphthalene):
            for i, bond_idx in enumerate(ring.bonds):
                bond = naphthalene.bonds[bond_idx]
                assert {bond.begin, bond.end} == {
                    ring.atoms[i],
                    ring.atoms[(i + 1) % ring.size],
                }

    def test_ring_systems(self):
        """Test biphenyl has two ring systems, naphthalene one."""
        biphenyl = from_smiles("c1ccccc1-c1ccccc1")
        assert len(partition_rings(find_rings(biphenyl))) == 2
        naphthalene = from_smiles("c1ccc2ccccc2c1")
        systems = partition_rings(find_rings(naphthalene))
        assert len(systems) == 1
        assert len(ring_system_atoms(systems[0])) == 10

    def test_mark_ring_membership(self, ethylbenzene):
        """Test ring flags on bonds and atoms."""
        atom_in_ring = mark_ring_membership(ethylbenzene)
        assert atom_in_ring.sum() == 6
        assert sum(b.in_ring for b in ethylbenzene.bonds) == 6

    def test_most_complex_ring(self):
        """Test the middle ring of anthracene is the most connected."""
        anthracene = from_smiles("c1ccc2cc3ccccc3cc2c1")
        rings = find_rings(anthracene)
        middle = most_complex_ring(rings)
        others = [r for r in rings if r is not middle]
        assert all(middle.atom_set & r.atom_set for r in others)

    def test_macrocycle(self, make_cycle):
        """Test ten membered rings count as macrocycles."""
        rings = find_rings(make_cycle(12))
        assert is_macrocycle(rings[0], rings)
        small = find_rings(make_cycle(8))
        assert not is_macrocycle(small[0], small)

    def test_walk(self, make_cycle):
        """Test walking a ring away from a neighbour."""
        ring = find_rings(make_cycle(5))[0]
        start = ring.atoms[0]
        prev, nxt = ring.neighbors_in_ring(start)
        walk = ring.walk(start, away_from=nxt)
        assert walk[0] == prev
        assert walk[-1] == nxt
        assert len(walk) == 4


class TestRingPlacement:
    """Tests for polygon placement."""

    @pytest.mark.parametrize("size", [3, 4, 5, 6, 7, 8])
    def test_ring_radius(self, size):
        """Test the circumradius of regular polygons."""
        expected = 1.5 / (2 * math.sin(math.pi / size))
        assert ring_radius(size, 1.5) == pytest.approx(expected)

    @pytest.mark.parametrize("size", [3, 4, 5, 6, 7, 8])
    def test_standalone_ring_is_regular(self, size, make_cycle):
        """Test all edges have the bond length and atoms lie on the circle."""
        mol = make_cycle(size)
        ring = find_rings(mol)[0]
        state, placer = _placers(mol)
        placer.place_standalone_ring(ring, np.zeros(2))
        np.testing.assert_allclose(_ring_edges(state.coords, ring), 1.5, atol=1e-9)
        radii = np.linalg.norm(state.coords, axis=1)
        np.testing.assert_allclose(radii, ring_radius(size, 1.5), atol=1e-9)

    def test_first_ring_from_bond(self, make_cycle):
        """Test placing a ring from its first bond."""
        mol = make_cycle(6)
        ring = find_rings(mol)[0]
        state, placer = _placers(mol)
        vector = np.array([0.0, 1.0])
        shared = placer.place_first_bond(ring.bonds[0], vector)
        centre_vector = placer.ring_center_of_first_ring(ring, vector)
        placer.place_ring(ring, shared, state.coords[shared].mean(axis=0), centre_vector)
        assert state.all_placed()
        np.testing.assert_allclose(_ring_edges(state.coords, ring), 1.5, atol=1e-9)

    def test_no_shared_atoms(self, make_cycle):
        """Test rings must share atoms with the placed part."""
        mol = make_cycle(6)
        ring = find_rings(mol)[0]
        _, placer = _placers(mol)
        with pytest.raises(ValueError):
            placer.place_ring(ring, [], np.zeros(2), np.array([1.0, 0.0]))

    def test_fused_rings(self, naphthalene):
        """Test the second ring of naphthalene is placed without overlap."""
        rings = find_rings(naphthalene)
        state, placer = _placers(naphthalene)
        first = rings[0]
        placer.place_standalone_ring(first, np.zeros(2))
        first.placed = True
        placer.place_connected_rings(rings, first, FUSED)
        assert all(r.placed for r in rings)
        for ring in rings:
            np.testing.assert_allclose(_ring_edges(state.coords, ring), 1.5, atol=1e-6)
        centres = [state.coords[list(r.atoms)].mean(axis=0) for r in rings]
        assert np.linalg.norm(centres[0] - centres[1]) == pytest.approx(
            2 * math.sqrt(1.5 ** 2 - 0.75 ** 2), abs=1e-6
        )

    def test_spiro_rings(self):
        """Test spiro rings only share their spiro atom."""
        mol = from_smiles("C1CCC2(CC1)CCCC2")
        rings = find_rings(mol)
        state, placer = _placers(mol)
        first = rings[-1]
        placer.place_standalone_ring(first, np.zeros(2))
        first.placed = True
        placer.place_connected_rings(rings, first, SPIRO)
        assert all(r.placed for r in rings)
        for ring in rings:
            np.testing.assert_allclose(_ring_edges(state.coords, ring), 1.5, atol=1e-6)
        centres = [state.coords[list(r.atoms)].mean(axis=0) for r in rings]
        assert np.linalg.norm(centres[0] - centres[1]) > 2.0
