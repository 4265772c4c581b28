"""
Pytest configuration and fixtures for structure-layout tests.
"""

import math

import numpy as np
import pytest

from structure_layout.io import from_smiles
from structure_layout.molecule import BondOrder, Molecule


def _bond_lengths(mol):
    coords = mol.coordinates()
    return np.array(
        [np.linalg.norm(coords[b.begin] - coords[b.end]) for b in mol.bonds]
    )


def _min_nonbonded_distance(mol):
    coords = mol.coordinates()
    bonded = {(b.begin, b.end) for b in mol.bonds} | {(b.end, b.begin) for b in mol.bonds}
    best = math.inf
    for i in range(mol.num_atoms):
        for j in range(i + 1, mol.num_atoms):
            if (i, j) not in bonded:
                best = min(best, float(np.linalg.norm(coords[i] - coords[j])))
    return best


def _chain(n, symbol="C"):
    mol = Molecule(name=f"chain{n}")
    for _ in range(n):
        mol.add_atom(symbol)
    for i in range(n - 1):
        mol.add_bond(i, i + 1)
    return mol


def _cycle(n, symbol="C"):
    mol = _chain(n, symbol)
    mol.add_bond(n - 1, 0)
    mol.name = f"cycle{n}"
    return mol


@pytest.fixture
def make_chain():
    """Factory for unbranched acyclic chains."""
    return _chain


@pytest.fixture
def make_cycle():
    """Factory for single rings."""
    return _cycle


@pytest.fixture
def bond_lengths():
    """Helper returning the bond lengths of a laid out molecule."""
    return _bond_lengths


@pytest.fixture
def min_nonbonded_distance():
    """Helper returning the closest approach of two unbonded atoms."""
    return _min_nonbonded_distance


@pytest.fixture
def butane():
    """n-Butane skeleton built from the model."""
    return _chain(4)


@pytest.fixture
def benzene():
    """Kekulé benzene built from the model."""
    mol = Molecule(name="benzene")
    for _ in range(6):
        mol.add_atom("C", implicit_h=1, aromatic=True)
    for i in range(6):
        order = BondOrder.DOUBLE if i % 2 == 0 else BondOrder.SINGLE
        mol.add_bond(i, (i + 1) % 6, order)
    return mol


@pytest.fixture
def naphthalene():
    """Naphthalene parsed through RDKit."""
    return from_smiles("c1ccc2ccccc2c1", name="naphthalene")


@pytest.fixture
def alanine():
    """L-alanine with one tetrahedral centre."""
    return from_smiles("C[C@H](N)C(=O)O", name="alanine")


@pytest.fixture
def ethylbenzene():
    """A ring with a short chain substituent."""
    return from_smiles("CCc1ccccc1", name="ethylbenzene")


@pytest.fixture
def sodium_acetate():
    """Two ionic fragments."""
    return from_smiles("CC(=O)[O-].[Na+]", name="sodium acetate")


@pytest.fixture
def square_coords():
    """Unit square (0,0), (1,0), (1,1), (0,1)."""
    return np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
