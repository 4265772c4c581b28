"""
Tests for double bond configuration correction.
"""

import numpy as np

from structure_layout.generator import StructureDiagramGenerator
from structure_layout.geometric import correct_geometric_configuration, drawn_configuration
from structure_layout.io import from_smiles
from structure_layout.molecule import BondStereo, Configuration, DoubleBondStereo


def _element(mol):
    return next(e for e in mol.stereo if isinstance(e, DoubleBondStereo))


TRANS_ZIGZAG = np.array([[0.0, 0.0], [1.3, 0.75], [2.6, 0.0], [3.9, 0.75]])


class TestDrawnConfiguration:
    """Tests for reading the configuration off the drawing."""

    def test_trans(self):
        """Test a zigzag is drawn opposite."""
        mol = from_smiles("C/C=C/C")
        assert drawn_configuration(TRANS_ZIGZAG, mol, _element(mol)) == Configuration.OPPOSITE

    def test_on_axis(self):
        """Test a ligand on the bond axis has no drawn configuration."""
        mol = from_smiles("C/C=C/C")
        coords = np.array([[0.0, 0.0], [1.5, 0.0], [3.0, 0.0], [4.5, 0.0]])
        assert drawn_configuration(coords, mol, _element(mol)) == Configuration.UNSPECIFIED


class TestCorrection:
    """Tests for fixing mismatched double bonds."""

    def test_cis_reflected(self):
        """Test a cis bond drawn trans is reflected."""
        mol = from_smiles("C/C=C\\C")
        element = _element(mol)
        assert element.configuration == Configuration.TOGETHER
        coords = TRANS_ZIGZAG.copy()
        assert correct_geometric_configuration(mol, coords) == 1
        assert drawn_configuration(coords, mol, element) == Configuration.TOGETHER
        bond = mol.bonds[element.bond]
        assert np.linalg.norm(coords[bond.begin] - coords[bond.end]) == np.linalg.norm(
            TRANS_ZIGZAG[bond.begin] - TRANS_ZIGZAG[bond.end]
        )

    def test_matching_left_alone(self):
        """Test a correctly drawn bond is not moved."""
        mol = from_smiles("C/C=C/C")
        coords = TRANS_ZIGZAG.copy()
        assert correct_geometric_configuration(mol, coords) == 0
        np.testing.assert_array_equal(coords, TRANS_ZIGZAG)

    def test_generated_cis(self):
        """Test generated cis-2-butene is drawn cis."""
        mol = from_smiles("C/C=C\\C")
        StructureDiagramGenerator().generate_coordinates(mol)
        element = _element(mol)
        assert drawn_configuration(mol.coordinates(), mol, element) == Configuration.TOGETHER

    def test_generated_trans(self):
        """Test generated trans-2-pentene is drawn trans."""
        mol = from_smiles("C/C=C/CC")
        StructureDiagramGenerator().generate_coordinates(mol)
        element = _element(mol)
        assert drawn_configuration(mol.coordinates(), mol, element) == Configuration.OPPOSITE

    def test_ring_bond_marked_crossed(self):
        """Test a trans ring double bond drawn cis is marked crossed."""
        mol = from_smiles("C1CCC/C=C/CC1")
        element = _element(mol)
        StructureDiagramGenerator().generate_coordinates(mol)
        assert mol.bonds[element.bond].stereo is BondStereo.E_OR_Z
