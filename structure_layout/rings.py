"""
Rings Module
============

Ring perception and ring-system partitioning.

Elementary cycles are perceived by RDKit (symmetrised SSSR) on a bare copy
of the layout graph; this module turns them into :class:`Ring` objects with
atoms in cyclic order and partitions them into ring systems (rings
connected through shared atoms).
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

import numpy as np
from rdkit import Chem

from structure_layout.molecule import Molecule


@dataclass(eq=False)
class Ring:
    """
    Elementary cycle of the layout graph.

    Attributes:
        atoms: Atom indices in cyclic order.
        bonds: Bond indices, ``bonds[i]`` joins ``atoms[i]`` and
            ``atoms[(i + 1) % size]``.
        placed: Set once all ring atoms have coordinates.
        snap: Bridged rings of macrocycle systems snap their centre to the
            bridgehead midpoint.
    """

    atoms: Tuple[int, ...]
    bonds: Tuple[int, ...]
    placed: bool = False
    snap: bool = False
    atom_set: FrozenSet[int] = field(init=False, repr=False)
    bond_set: FrozenSet[int] = field(init=False, repr=False)

    def __post_init__(self):
        self.atom_set = frozenset(self.atoms)
        self.bond_set = frozenset(self.bonds)

    @property
    def size(self) -> int:
        return len(self.atoms)

    def __len__(self) -> int:
        return len(self.atoms)

    def __contains__(self, atom: int) -> bool:
        return atom in self.atom_set

    def shared_atoms(self, other: "Ring") -> List[int]:
        """Atoms also in ``other``, in the cyclic order of this ring."""
        return [a for a in self.atoms if a in other.atom_set]

    def shared_bonds(self, other: "Ring") -> List[int]:
        return [b for b in self.bonds if b in other.bond_set]

    def neighbors_in_ring(self, atom: int) -> Tuple[int, int]:
        pos = self.atoms.index(atom)
        return self.atoms[pos - 1], self.atoms[(pos + 1) % self.size]

    def walk(self, start: int, away_from: int) -> List[int]:
        """
        The other ring atoms in order, starting next to ``start`` and
        moving away from its ring neighbour ``away_from``.
        """
        n = self.size
        pos = self.atoms.index(start)
        step = -1 if self.atoms[(pos + 1) % n] == away_from else 1
        return [self.atoms[(pos + step * k) % n] for k in range(1, n)]


def _bare_rdkit_graph(mol: Molecule) -> Chem.RWMol:
    rwmol = Chem.RWMol()
    for atom in mol.atoms:
        rwmol.AddAtom(Chem.Atom(atom.atomic_number))
    for bond in mol.bonds:
        rwmol.AddBond(bond.begin, bond.end, Chem.BondType.SINGLE)
    return rwmol


def find_rings(mol: Molecule) -> List[Ring]:
    """
    Elementary cycles of the molecule (RDKit symmetrised SSSR).

    Returns:
        Rings sorted by size (stable for equal sizes).
    """
    if mol.num_bonds < mol.num_atoms:
        return []
    rwmol = _bare_rdkit_graph(mol)
    bmap = mol.bond_map()
    rings = []
    for cycle in Chem.GetSymmSSSR(rwmol):
        atoms = tuple(int(a) for a in cycle)
        bonds = tuple(
            bmap[(atoms[i], atoms[(i + 1) % len(atoms)])] for i in range(len(atoms))
        )
        rings.append(Ring(atoms, bonds))
    rings.sort(key=lambda r: r.size)
    return rings


def ring_membership(mol: Molecule) -> Tuple[np.ndarray, np.ndarray]:
    """
    Boolean ring membership of atoms and bonds.

    Returns:
        Tuple of (atom_in_ring, bond_in_ring) arrays.
    """
    atom_in_ring = np.zeros(mol.num_atoms, dtype=bool)
    bond_in_ring = np.zeros(mol.num_bonds, dtype=bool)
    for ring in find_rings(mol):
        atom_in_ring[list(ring.atoms)] = True
        bond_in_ring[list(ring.bonds)] = True
    return atom_in_ring, bond_in_ring


def mark_ring_membership(mol: Molecule) -> np.ndarray:
    """Set ``Bond.in_ring`` from ring perception and return atom ring flags."""
    atom_in_ring, bond_in_ring = ring_membership(mol)
    for bond, flag in zip(mol.bonds, bond_in_ring):
        bond.in_ring = bool(flag)
    return atom_in_ring


def partition_rings(rings: Sequence[Ring]) -> List[List[Ring]]:
    """
    Group rings into ring systems (rings connected by shared atoms).

    Returns:
        Ring systems in order of their first ring.
    """
    systems: List[List[Ring]] = []
    assigned: Dict[int, int] = {}
    for start in range(len(rings)):
        if start in assigned:
            continue
        assigned[start] = len(systems)
        system = [rings[start]]
        stack = [start]
        while stack:
            i = stack.pop()
            for j in range(len(rings)):
                if j not in assigned and rings[i].atom_set & rings[j].atom_set:
                    assigned[j] = assigned[start]
                    system.append(rings[j])
                    stack.append(j)
        systems.append(system)
    return systems


def connected_rings(ring: Ring, ring_set: Sequence[Ring]) -> List[Ring]:
    """Rings of ``ring_set`` sharing at least one atom with ``ring``."""
    return [
        other
        for other in ring_set
        if other is not ring and ring.atom_set & other.atom_set
    ]


def most_complex_ring(ring_set: Sequence[Ring]) -> Ring:
    """The ring with the most connected rings, larger rings winning ties."""
    best: Optional[Ring] = None
    best_key = None
    for ring in ring_set:
        key = (len(connected_rings(ring, ring_set)), ring.size)
        if best_key is None or key > best_key:
            best, best_key = ring, key
    return best


def ring_system_atoms(ring_set: Sequence[Ring]) -> List[int]:
    """Distinct atoms of a ring system in order of appearance."""
    seen = set()
    atoms = []
    for ring in ring_set:
        for a in ring.atoms:
            if a not in seen:
                seen.add(a)
                atoms.append(a)
    return atoms


def ring_system_bonds(ring_set: Sequence[Ring]) -> List[int]:
    """Distinct bonds of a ring system in order of appearance."""
    seen = set()
    bonds = []
    for ring in ring_set:
        for b in ring.bonds:
            if b not in seen:
                seen.add(b)
                bonds.append(b)
    return bonds


def is_macrocycle(ring: Ring, ring_set: Sequence[Ring]) -> bool:
    """
    A ring of at least 10 atoms with a bond not shared with another ring.
    """
    if ring.size < 10:
        return False
    shared = set()
    for other in ring_set:
        if other is not ring:
            shared.update(other.bond_set)
    return any(b not in shared for b in ring.bonds)
