"""
Geometric Configuration
=======================

Makes the drawn geometry of double bonds agree with their stored
configuration.

The chain placer always draws trans zigzags, so a cis double bond comes out
wrong about half the time. Each mismatched acyclic double bond is fixed by
reflecting the smaller side of the molecule across the bond axis. A
mismatched ring double bond cannot be flipped without breaking the ring and
is labelled as crossed instead.
"""

import logging
from typing import List

import numpy as np

from structure_layout.geometry import reflect
from structure_layout.molecule import BondStereo, Configuration, DoubleBondStereo, Molecule
from structure_layout.rings import ring_membership

logger = logging.getLogger(__name__)


def _side(coords: np.ndarray, beg: int, end: int, atom: int) -> int:
    axis = coords[end] - coords[beg]
    rel = coords[atom] - coords[beg]
    return int(np.sign(round(float(axis[0] * rel[1] - axis[1] * rel[0]), 9)))


def _reachable(adjacency: List[List[int]], start: int, blocked: int) -> List[int]:
    seen = {start, blocked}
    stack = [start]
    found = []
    while stack:
        u = stack.pop()
        for w in adjacency[u]:
            if w not in seen:
                seen.add(w)
                found.append(w)
                stack.append(w)
    return found


def drawn_configuration(coords: np.ndarray, mol: Molecule, element: DoubleBondStereo) -> Configuration:
    """
    Configuration of a double bond as currently drawn.

    Returns:
        TOGETHER when both ligands are on the same side of the bond axis,
        OPPOSITE when they are on opposite sides, UNSPECIFIED when a ligand
        lies on the axis.
    """
    bond = mol.bonds[element.bond]
    beg, end = bond.begin, bond.end
    first, second = element.ligands
    side_first = _side(coords, beg, end, first)
    side_second = _side(coords, beg, end, second)
    if side_first == 0 or side_second == 0:
        return Configuration.UNSPECIFIED
    if side_first == side_second:
        return Configuration.TOGETHER
    return Configuration.OPPOSITE


def correct_geometric_configuration(mol: Molecule, coords: np.ndarray) -> int:
    """
    Fix double bonds drawn with the wrong configuration.

    Args:
        mol: The molecule with its double bond stereo descriptors.
        coords: (N, 2) coordinates, modified in place.

    Returns:
        Number of double bonds that were corrected or marked as crossed.
    """
    elements = [e for e in mol.stereo if isinstance(e, DoubleBondStereo)]
    if not elements:
        return 0
    adjacency = mol.adjacency_list()
    _, bond_in_ring = ring_membership(mol)
    corrected = 0
    for element in elements:
        if element.configuration == Configuration.UNSPECIFIED:
            continue
        drawn = drawn_configuration(coords, mol, element)
        if drawn == Configuration.UNSPECIFIED or drawn == element.configuration:
            continue
        bond = mol.bonds[element.bond]
        corrected += 1
        if bond_in_ring[element.bond]:
            logger.debug("Ring double bond %d drawn with the wrong configuration", element.bond)
            bond.stereo = BondStereo.E_OR_Z
            continue
        end_side = _reachable(adjacency, bond.end, bond.begin)
        begin_side = _reachable(adjacency, bond.begin, bond.end)
        moved = end_side if len(end_side) <= len(begin_side) else begin_side
        reflect(coords, moved, coords[bond.begin].copy(), coords[bond.end].copy())
        logger.debug("Reflected %d atoms to fix double bond %d", len(moved), element.bond)
    return corrected
