"""
Tests for special group finalisation.

Tests cover:
- Brackets across crossing bonds and around atoms
- Positional variation bonds
- Multiple group stacking
"""

import logging
import math

import numpy as np
import pytest

from structure_layout.molecule import Sgroup, SgroupType
from structure_layout.sgroup_layout import SgroupLayout, finalize_layout

ZIGZAG = np.array([[0.0, 0.0], [1.3, 0.75], [2.6, 0.0], [3.9, 0.75]])


@pytest.fixture
def repeat_unit(make_chain):
    """Four atom chain with a repeat unit over the middle atoms."""
    mol = make_chain(4)
    mol.atoms[0].symbol = "*"
    mol.atoms[3].symbol = "*"
    mol.sgroups.append(
        Sgroup(SgroupType.STRUCTURE_REPEAT_UNIT, atoms=[1, 2], bonds=[0, 2], subscript="n")
    )
    return mol


@pytest.fixture
def substituted_hexagon(make_cycle):
    """Six ring with a substituent that may sit on atoms 0, 1 or 2."""
    mol = make_cycle(6)
    mol.add_atom("O")
    bond = mol.add_bond(0, 6)
    mol.sgroups.append(Sgroup(SgroupType.MULTICENTER, atoms=[0, 1, 2], bonds=[bond]))
    coords = [
        [1.5 * math.cos(math.radians(60 * k)), 1.5 * math.sin(math.radians(60 * k))]
        for k in range(6)
    ]
    coords.append([3.0, 0.0])
    return mol, np.array(coords)


class TestBrackets:
    """Tests for bracket placement."""

    def test_crossing_brackets(self, repeat_unit):
        """Test one bracket crosses the middle of each crossing bond."""
        coords = ZIGZAG.copy()
        finalize_layout(repeat_unit, coords)
        brackets = repeat_unit.sgroups[0].brackets
        assert len(brackets) == 2
        for bracket, (a, b) in zip(brackets, [(0, 1), (2, 3)]):
            mid = (ZIGZAG[a] + ZIGZAG[b]) / 2
            assert bracket.x1 == pytest.approx(bracket.x2)
            assert bracket.x1 == pytest.approx(mid[0])
            assert (bracket.y1 + bracket.y2) / 2 == pytest.approx(mid[1])
            assert abs(bracket.y2 - bracket.y1) == pytest.approx(1.5)

    def test_atoms_not_moved(self, repeat_unit):
        """Test brackets never move atoms."""
        coords = ZIGZAG.copy()
        finalize_layout(repeat_unit, coords)
        np.testing.assert_array_equal(coords, ZIGZAG)

    def test_horizontal_brackets(self, make_chain):
        """Test vertical crossing bonds get horizontal brackets."""
        mol = make_chain(3)
        mol.sgroups.append(Sgroup(SgroupType.ANY_POLYMER, atoms=[1], bonds=[0, 1]))
        coords = np.array([[0.0, 0.0], [0.0, 1.5], [0.0, 3.0]])
        finalize_layout(mol, coords)
        for bracket in mol.sgroups[0].brackets:
            assert bracket.y1 == pytest.approx(bracket.y2)

    def test_enclosing_brackets(self, make_chain):
        """Test groups without crossing bonds are bracketed around their atoms."""
        mol = make_chain(4)
        mol.sgroups.append(Sgroup(SgroupType.COMPONENT, atoms=[0, 1, 2, 3]))
        coords = ZIGZAG.copy()
        finalize_layout(mol, coords)
        left, right = mol.sgroups[0].brackets
        pad = 0.7 * 1.5
        assert left.x1 == pytest.approx(-pad)
        assert right.x1 == pytest.approx(3.9 + pad)
        assert min(left.y1, left.y2) == pytest.approx(-pad)
        assert max(right.y1, right.y2) == pytest.approx(0.75 + pad)

    def test_shared_bond_offset(self, repeat_unit):
        """Test a nested group pushes the enclosing bracket outwards."""
        outer = Sgroup(SgroupType.COPOLYMER, atoms=[1, 2], bonds=[0, 2])
        inner = repeat_unit.sgroups[0]
        inner.parents.append(outer)
        repeat_unit.sgroups.append(outer)
        coords = ZIGZAG.copy()
        finalize_layout(repeat_unit, coords)
        assert outer.brackets[0].x1 < inner.brackets[0].x1
        assert outer.brackets[1].x1 > inner.brackets[1].x1

    def test_data_groups_have_no_brackets(self, make_chain):
        """Test data groups are ignored."""
        mol = make_chain(2)
        mol.sgroups.append(Sgroup(SgroupType.DATA, atoms=[0]))
        finalize_layout(mol, np.array([[0.0, 0.0], [1.5, 0.0]]))
        assert mol.sgroups[0].brackets == []


class TestPositionalVariation:
    """Tests for substituents drawn across a ring bond."""

    def test_crosses_bond_middle(self, substituted_hexagon):
        """Test the substituent is moved outside the middle of a ring bond."""
        mol, coords = substituted_hexagon
        SgroupLayout(mol, coords).place_positional_variation()
        mid = (coords[0] + coords[1]) / 2
        assert np.linalg.norm(coords[6] - mid) == pytest.approx(0.9)
        assert np.linalg.norm(coords[6]) > np.linalg.norm(mid)

    def test_missing_bond_logged(self, substituted_hexagon, caplog):
        """Test groups without exactly one bond are skipped with a warning."""
        mol, coords = substituted_hexagon
        mol.sgroups[0].bonds = []
        before = coords.copy()
        with caplog.at_level(logging.WARNING, logger="structure_layout.sgroup_layout"):
            SgroupLayout(mol, coords).place_positional_variation()
        assert "Skipping multicenter group" in caplog.text
        np.testing.assert_array_equal(coords, before)


class TestMultipleGroups:
    """Tests for stacking repeated units."""

    def test_copy_stacked_on_parent(self, make_chain):
        """Test the hidden copy sits on the displayed unit and the tail follows."""
        mol = make_chain(4)
        mol.sgroups.append(
            Sgroup(SgroupType.MULTIPLE_GROUP, atoms=[1, 2], bonds=[0, 2], parent_atoms=[1])
        )
        coords = np.array([[0.0, 0.0], [1.5, 0.0], [3.0, 0.0], [4.5, 0.0]])
        SgroupLayout(mol, coords).place_multiple_groups()
        np.testing.assert_allclose(coords[2], [1.5, 0.0], atol=1e-9)
        np.testing.assert_allclose(coords[3], [3.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(coords[:2], [[0.0, 0.0], [1.5, 0.0]], atol=1e-9)
