"""
Layout State
============

Per-run layout record holding the mutable placement fields of every atom.

The state is a structure of arrays indexed by atom index, created fresh for
each generation run and never shared between runs:

- ``coords``: (N, 2) coordinates, NaN rows are atoms without a point
- ``placed``: atom has received its final position in the current step
- ``in_ring``: atom belongs to a perceived ring
- ``visited``: scratch flag for traversals
- ``aliphatic``: atom is part of an acyclic chain
- ``priority``: centrality rank, 1 is the most central atom
- ``macrocycle_hint``: atom was placed by the macrocycle layout
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import numpy as np

from structure_layout.molecule import Molecule


@dataclass
class LayoutState:
    """Mutable placement fields for one molecule."""

    coords: np.ndarray
    placed: np.ndarray
    in_ring: np.ndarray
    visited: np.ndarray
    aliphatic: np.ndarray
    priority: np.ndarray
    macrocycle_hint: np.ndarray
    bond_in_ring: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=bool))

    @classmethod
    def for_molecule(cls, mol: Molecule, keep_points: bool = False) -> "LayoutState":
        """
        Fresh state sized for ``mol``.

        Args:
            mol: The molecule to lay out.
            keep_points: Copy existing atom points instead of clearing them.
        """
        n = mol.num_atoms
        coords = np.full((n, 2), np.nan)
        if keep_points:
            for idx, atom in enumerate(mol.atoms):
                if atom.point is not None:
                    coords[idx] = atom.point
        bond_in_ring = np.array([bond.in_ring for bond in mol.bonds], dtype=bool)
        return cls(
            coords=coords,
            placed=np.zeros(n, dtype=bool),
            in_ring=np.zeros(n, dtype=bool),
            visited=np.zeros(n, dtype=bool),
            aliphatic=np.zeros(n, dtype=bool),
            priority=np.zeros(n, dtype=int),
            macrocycle_hint=np.zeros(n, dtype=bool),
            bond_in_ring=bond_in_ring.reshape(-1),
        )

    @property
    def num_atoms(self) -> int:
        return len(self.coords)

    def has_point(self, idx: int) -> bool:
        return not np.isnan(self.coords[idx, 0])

    def set_point(self, idx: int, point) -> None:
        self.coords[idx] = point

    def place(self, idx: int, point) -> None:
        """Set the point of an atom and mark it placed."""
        self.coords[idx] = point
        self.placed[idx] = True

    def mark_placed(self, indices: Iterable[int], flag: bool = True) -> None:
        for idx in indices:
            self.placed[idx] = flag

    def placed_atoms(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self.placed)]

    def all_placed(self, indices: Optional[Iterable[int]] = None) -> bool:
        if indices is None:
            return bool(self.placed.all())
        return all(self.placed[i] for i in indices)

    def reset_visited(self) -> None:
        self.visited[:] = False

    def write_back(self, mol: Molecule) -> None:
        """Copy the coordinates onto the molecule's atom points."""
        mol.set_coordinates(self.coords)
