"""
Tests for macrocycle layout.
"""

import numpy as np
import pytest

from structure_layout.generator import StructureDiagramGenerator
from structure_layout.io import from_smiles
from structure_layout.layout_state import LayoutState
from structure_layout.macrocycle import ANTICLOCKWISE, CLOCKWISE, MacrocycleLayout, winding
from structure_layout.rings import find_rings
from structure_layout.templates import TemplateLibrary


class TestWinding:
    """Tests for polygon turn directions."""

    def test_convex_polygon(self, square_coords):
        """Test an anticlockwise square turns left everywhere."""
        overall, turns = winding(square_coords)
        assert overall == ANTICLOCKWISE
        assert (turns == ANTICLOCKWISE).all()

    def test_reversed_polygon(self, square_coords):
        """Test reversing the vertices flips the winding."""
        overall, _ = winding(square_coords[::-1])
        assert overall == CLOCKWISE

    def test_concave_vertex(self):
        """Test a notch turns the other way."""
        arrow = np.array([[0, 0], [2, 0], [2, 2], [1, 1], [0, 2]], dtype=float)
        overall, turns = winding(arrow)
        assert overall == ANTICLOCKWISE
        assert turns[3] == CLOCKWISE

    def test_straight_vertex(self):
        """Test collinear vertices give no overall winding."""
        line = np.array([[0, 0], [1, 0], [2, 0], [1, 1]], dtype=float)
        assert winding(line)[0] == 0


class TestMacrocycleLayout:
    """Tests for placing rings on outlines."""

    @pytest.mark.parametrize("size", [10, 12, 14])
    def test_ring_on_outline(self, size, make_cycle):
        """Test every ring bond keeps the bond length."""
        mol = make_cycle(size)
        ring = find_rings(mol)[0]
        state = LayoutState.for_molecule(mol)
        assert MacrocycleLayout(mol, state, 1.5).layout(ring, [ring])
        assert state.all_placed()
        assert state.macrocycle_hint.all()
        for i in range(size):
            a, b = ring.atoms[i], ring.atoms[(i + 1) % size]
            assert np.linalg.norm(state.coords[a] - state.coords[b]) == pytest.approx(1.5, abs=0.01)

    def test_scaled_outline(self, make_cycle):
        """Test outlines scale with the bond length."""
        mol = make_cycle(10)
        ring = find_rings(mol)[0]
        state = LayoutState.for_molecule(mol)
        MacrocycleLayout(mol, state, 1.0).layout(ring, [ring])
        a, b = ring.atoms[0], ring.atoms[1]
        assert np.linalg.norm(state.coords[a] - state.coords[b]) == pytest.approx(1.0, abs=0.01)

    def test_no_outline(self, make_cycle):
        """Test a ring without an outline is left for polygon placement."""
        mol = make_cycle(12)
        ring = find_rings(mol)[0]
        state = LayoutState.for_molecule(mol)
        assert not MacrocycleLayout(mol, state, 1.5, TemplateLibrary()).layout(ring, [ring])
        assert not state.placed.any()


class TestFusedMacrocycle:
    """Tests for a macrocycle with a fused benzene ring."""

    def test_generated_layout(self, bond_lengths):
        """Test a 12 membered ring fused to benzene is laid out completely."""
        mol = from_smiles("C1CCCCCCc2ccccc2CCC1")
        StructureDiagramGenerator().generate_coordinates(mol)
        coords = mol.coordinates()
        assert not np.isnan(coords).any()
        lengths = bond_lengths(mol)
        assert np.median(lengths) == pytest.approx(1.5, abs=0.05)
        assert lengths.max() <= 3.0 + 1e-6
        rings = find_rings(mol)
        benzene = next(r for r in rings if r.size == 6)
        for i in range(6):
            a, b = benzene.atoms[i], benzene.atoms[(i + 1) % 6]
            assert np.linalg.norm(coords[a] - coords[b]) == pytest.approx(1.5, abs=0.05)

    @staticmethod
    def _fusion_turns(rings, coords):
        macrocycle = next(r for r in rings if r.size == 12)
        benzene = next(r for r in rings if r.size == 6)
        overall, turns = winding(coords[list(macrocycle.atoms)])
        shared = [i for i, atom in enumerate(macrocycle.atoms) if atom in benzene.atom_set]
        return overall, [int(turns[i]) for i in shared]

    def test_fusion_atoms_convex_on_outline(self):
        """Test the atoms shared with benzene sit on convex outline vertices."""
        mol = from_smiles("C1CCCCCCc2ccccc2CCC1")
        rings = find_rings(mol)
        macrocycle = next(r for r in rings if r.size == 12)
        state = LayoutState.for_molecule(mol)
        assert MacrocycleLayout(mol, state, 1.5).layout(macrocycle, rings)
        overall, shared_turns = self._fusion_turns(rings, state.coords)
        assert overall != 0
        assert len(shared_turns) == 2
        assert shared_turns == [overall, overall]

    def test_fusion_atoms_convex_in_layout(self):
        """Test the fusion atoms stay convex after the full layout."""
        mol = from_smiles("C1CCCCCCc2ccccc2CCC1")
        StructureDiagramGenerator().generate_coordinates(mol)
        overall, shared_turns = self._fusion_turns(find_rings(mol), mol.coordinates())
        assert overall != 0
        assert shared_turns == [overall, overall]
