"""
Tests for wedge, hatch and wavy bond labels.
"""

import numpy as np
import pytest

from structure_layout.generator import StructureDiagramGenerator
from structure_layout.io import from_smiles
from structure_layout.molecule import BondOrder, BondStereo, TetrahedralStereo, Winding
from structure_layout.nonplanar import (
    NonplanarBonds,
    assign_nonplanar_labels,
    sort_clockwise,
)

WEDGES = (BondStereo.UP, BondStereo.DOWN)


def _labelled(mol, labels=WEDGES):
    return [idx for idx, bond in enumerate(mol.bonds) if bond.stereo in labels]


class TestClockwiseSort:
    """Tests for ordering points around a centre."""

    def test_order_and_parity(self):
        """Test points are sorted clockwise from twelve o'clock."""
        points = [np.array(p, dtype=float) for p in [(-1, 0), (1, 0), (0, 1)]]
        indices = [0, 1, 2]
        parity = sort_clockwise(indices, np.zeros(2), points, 3)
        assert indices == [2, 1, 0]
        assert parity == -1

    def test_sorted_input(self):
        """Test an already sorted list needs no swaps."""
        points = [np.array(p, dtype=float) for p in [(0, 1), (1, 0), (-1, 0)]]
        indices = [0, 1, 2]
        assert sort_clockwise(indices, np.zeros(2), points, 3) == 1
        assert indices == [0, 1, 2]


class TestTetrahedralLabels:
    """Tests for labelling stereocentres."""

    def test_single_wedge_from_centre(self, alanine):
        """Test alanine gets one wedge or hatch starting at its stereocentre."""
        StructureDiagramGenerator().generate_coordinates(alanine)
        labelled = _labelled(alanine)
        assert len(labelled) == 1
        bond = alanine.bonds[labelled[0]]
        assert bond.begin == 1
        assert bond.order is BondOrder.SINGLE

    def test_enantiomers_have_opposite_labels(self, alanine):
        """Test mirrored configurations label the same bond oppositely."""
        StructureDiagramGenerator().generate_coordinates(alanine)
        mirrored = from_smiles("C[C@@H](N)C(=O)O")
        mirrored.set_coordinates(alanine.coordinates())
        assign_nonplanar_labels(mirrored)
        (idx,) = _labelled(alanine)
        assert _labelled(mirrored) == [idx]
        assert mirrored.bonds[idx].stereo is not alanine.bonds[idx].stereo

    def test_idempotent(self, alanine):
        """Test labelling twice gives the same labels."""
        StructureDiagramGenerator().generate_coordinates(alanine)
        first = [bond.stereo for bond in alanine.bonds]
        assign_nonplanar_labels(alanine)
        assert [bond.stereo for bond in alanine.bonds] == first

    def test_prefers_acyclic_bond(self):
        """Test the label goes on the substituent rather than a ring bond."""
        mol = from_smiles("C[C@H]1CCCO1")
        StructureDiagramGenerator().generate_coordinates(mol)
        (idx,) = _labelled(mol)
        assert {mol.bonds[idx].begin, mol.bonds[idx].end} == {0, 1}
        assert mol.bonds[idx].begin == 1

    def test_no_stereo_no_labels(self, butane):
        """Test molecules without stereo get no wedges."""
        StructureDiagramGenerator().generate_coordinates(butane)
        assert _labelled(butane) == []

    def test_missing_coordinates(self, alanine):
        """Test labelling needs every atom placed."""
        with pytest.raises(ValueError):
            NonplanarBonds(alanine)


def _shifted_labels(smiles, shift):
    """Labels of a laid-out molecule, then of a copy whose ligands were reordered."""
    mol = from_smiles(smiles)
    StructureDiagramGenerator().generate_coordinates(mol)
    copy = from_smiles(smiles)
    copy.set_coordinates(mol.coordinates())
    element = next(e for e in copy.stereo if isinstance(e, TetrahedralStereo))
    shift(element)
    assign_nonplanar_labels(copy)
    return (
        [(bond.begin, bond.stereo) for bond in mol.bonds],
        [(bond.begin, bond.stereo) for bond in copy.bonds],
    )


def _rotate_back_three(element):
    first, a, b, c = element.ligands
    element.ligands = (first, b, c, a)


def _rotate_all_four(element):
    a, b, c, d = element.ligands
    element.ligands = (b, c, d, a)
    # an odd permutation, so the same centre is seen the other way round
    if element.winding == Winding.CLOCKWISE:
        element.winding = Winding.ANTICLOCKWISE
    else:
        element.winding = Winding.CLOCKWISE


class TestLigandOrder:
    """Tests for labels being independent of how a centre's ligands are listed."""

    @pytest.mark.parametrize("smiles", ["C[C@H](N)C(=O)O", "CC[C@](C)(N)O"], ids=["alanine", "quaternary"])
    def test_rotated_back_ligands(self, smiles):
        """Test rotating the three ligands behind the first keeps the labels."""
        before, after = _shifted_labels(smiles, _rotate_back_three)
        assert after == before
        assert any(stereo in WEDGES for _, stereo in after)

    @pytest.mark.parametrize("smiles", ["C[C@H](N)C(=O)O", "CC[C@](C)(N)O"], ids=["alanine", "quaternary"])
    def test_cyclic_shift_with_opposite_winding(self, smiles):
        """Test a cyclic shift of all four ligands with the winding inverted keeps the labels."""
        before, after = _shifted_labels(smiles, _rotate_all_four)
        assert after == before


class TestUnspecifiedDoubleBonds:
    """Tests for wavy bonds on double bonds without a configuration."""

    def test_wavy_bond(self):
        """Test an unspecified acyclic double bond gets a wavy neighbour bond."""
        mol = from_smiles("CC=CCC")
        StructureDiagramGenerator().generate_coordinates(mol)
        wavy = _labelled(mol, (BondStereo.UP_OR_DOWN,))
        assert len(wavy) == 1
        double = next(i for i, b in enumerate(mol.bonds) if b.order is BondOrder.DOUBLE)
        bond = mol.bonds[wavy[0]]
        assert bond.begin in (mol.bonds[double].begin, mol.bonds[double].end)

    def test_symmetric_end_is_not_stereo(self):
        """Test identical substituents on one end make the bond non-stereo."""
        mol = from_smiles("CC(C)=CC")
        StructureDiagramGenerator().generate_coordinates(mol)
        assert NonplanarBonds(mol).find_unspecified_double_bonds() == []
        assert _labelled(mol, (BondStereo.UP_OR_DOWN, BondStereo.E_OR_Z)) == []

    def test_specified_configuration(self):
        """Test double bonds with a configuration are left alone."""
        mol = from_smiles("C/C=C/CC")
        StructureDiagramGenerator().generate_coordinates(mol)
        assert NonplanarBonds(mol).find_unspecified_double_bonds() == []

    def test_ring_double_bond(self):
        """Test ring double bonds are never wavy."""
        mol = from_smiles("C1CC=CCC1")
        StructureDiagramGenerator().generate_coordinates(mol)
        assert NonplanarBonds(mol).find_unspecified_double_bonds() == []
