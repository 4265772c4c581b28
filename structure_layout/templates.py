"""
Templates Module
================

Identity template library: stored 2D layouts keyed by canonical SMILES.

A template entry pairs a canonical SMILES string (the fingerprint) with the
coordinates of its atoms listed in canonical output order. Looking up a
query structure recomputes its canonical SMILES and output order, so stored
points can be mapped back onto the query atoms by index.

Text format (one entry per line, ``#`` lines are comments)::

    C1CCCCCCCCC1 |(.0,1.5,;1.3,.75,;...)|

Coordinates are written with two decimals, a leading zero stripped and one
trailing zero stripped (``0.50`` → ``.5``, ``-0.30`` → ``-.3``).

Example:
    >>> library = TemplateLibrary()
    >>> library.add(mol_with_coordinates)
    >>> library.get_coordinates(query)  # list of (N, 2) arrays
"""

import logging
import warnings
from collections import OrderedDict
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import numpy as np
from rdkit import Chem

from structure_layout.molecule import BondOrder, Molecule

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
RING_TEMPLATES = "ring-templates.smi"
MACROCYCLE_TEMPLATES = "macrocycle-templates.smi"

_RDKIT_BOND_TYPES = {
    BondOrder.SINGLE: Chem.BondType.SINGLE,
    BondOrder.DOUBLE: Chem.BondType.DOUBLE,
    BondOrder.TRIPLE: Chem.BondType.TRIPLE,
    BondOrder.QUADRUPLE: Chem.BondType.QUADRUPLE,
    BondOrder.AROMATIC: Chem.BondType.AROMATIC,
}


def _default_hydrogens(element: int, valence: int) -> int:
    """Hydrogens needed to reach the lowest default valence ≥ ``valence``."""
    if element == 5:
        target = 3
    elif element == 6:
        target = 4
    elif element in (7, 15):
        target = 3 if valence <= 3 else 5
    elif element == 8:
        target = 2
    elif element == 16:
        if valence <= 2:
            target = 2
        elif valence <= 4:
            target = 4
        else:
            target = 6
    elif element in (9, 17, 35, 53):
        target = 1
    else:
        return 0
    return max(target - valence, 0)


def _output_order(rdmol: Chem.Mol) -> List[int]:
    """Atom indices in the order they were written by the last MolToSmiles."""
    value = rdmol.GetPropsAsDict(True, True).get("_smilesAtomOutputOrder")
    if value is None:
        value = rdmol.GetProp("_smilesAtomOutputOrder")
    if isinstance(value, str):
        return [int(tok) for tok in value.strip("[]").split(",") if tok.strip()]
    return [int(idx) for idx in value]


def canonical_smiles(mol: Molecule) -> Tuple[str, List[int]]:
    """
    Canonical SMILES of a structure and the output position of each atom.

    Hydrogen counts of heavy atoms are normalised to the default valence of
    the element for the duration of the call, so that tautomers and
    skeletons of the same graph produce the same key. The original counts
    are restored afterwards, also when RDKit fails.

    Args:
        mol: Structure to canonicalise.

    Returns:
        Tuple of (canonical SMILES, positions) where ``positions[i]`` is the
        index in the SMILES output order of atom ``i``.

    Raises:
        RuntimeError, ValueError: When RDKit cannot write the structure.
    """
    saved = [atom.implicit_h for atom in mol.atoms]
    valence = [0] * mol.num_atoms
    for bond in mol.bonds:
        valence[bond.begin] += bond.order.numeric
        valence[bond.end] += bond.order.numeric
    try:
        for idx, atom in enumerate(mol.atoms):
            number = atom.atomic_number
            if number == 1:
                atom.implicit_h = 0
            else:
                atom.implicit_h = _default_hydrogens(number, valence[idx])

        rwmol = Chem.RWMol()
        for atom in mol.atoms:
            rdatom = Chem.Atom(atom.atomic_number)
            rdatom.SetFormalCharge(atom.charge)
            if atom.mass:
                rdatom.SetIsotope(atom.mass)
            rdatom.SetNoImplicit(True)
            rdatom.SetNumExplicitHs(atom.implicit_h or 0)
            rwmol.AddAtom(rdatom)
        for bond in mol.bonds:
            rwmol.AddBond(bond.begin, bond.end, _RDKIT_BOND_TYPES[bond.order])
        rwmol.UpdatePropertyCache(strict=False)
        Chem.GetSymmSSSR(rwmol)
        smiles = Chem.MolToSmiles(rwmol, canonical=True)
        order = _output_order(rwmol)
    finally:
        for atom, count in zip(mol.atoms, saved):
            atom.implicit_h = count

    positions = [0] * mol.num_atoms
    for pos, idx in enumerate(order):
        positions[idx] = pos
    return smiles, positions


def _format_coordinate(value: float) -> str:
    text = f"{value:.2f}"
    if text.startswith("0."):
        text = text[1:]
    elif text.startswith("-0."):
        text = "-" + text[2:]
    if text.endswith("0"):
        text = text[:-1]
    return text


def encode_points(points: np.ndarray) -> str:
    """
    Encode coordinates in the compact ``|(x,y,;x,y,)|`` notation.

    Example:
        >>> encode_points(np.array([[0.5, -0.3], [1.25, 2.0]]))
        '|(.5,-.3,;1.25,2.0,)|'
    """
    parts = [
        f"{_format_coordinate(x)},{_format_coordinate(y)},"
        for x, y in np.asarray(points, dtype=float)
    ]
    return "|(" + ";".join(parts) + ")|"


def decode_points(text: str) -> np.ndarray:
    """
    Decode coordinates written by :func:`encode_points`.

    A plain list of numbers separated by commas or spaces, read as x, y
    pairs, is also accepted.
    """
    if text.startswith("|("):
        end = text.find(")", 2)
        if end < 0:
            return np.zeros((0, 2))
        points = []
        for token in text[2:end].split(";"):
            if not token:
                continue
            fields = token.split(",")
            points.append((float(fields[0]), float(fields[1])))
        return np.array(points, dtype=float).reshape(-1, 2)
    values = [float(tok) for tok in text.replace(",", " ").split()]
    return np.array(values[: len(values) // 2 * 2], dtype=float).reshape(-1, 2)


def decode_entry(line: str) -> Tuple[str, np.ndarray]:
    """Split a library line into its SMILES key and coordinates."""
    space = line.find(" ")
    if space < 0:
        raise ValueError(f"template line has no coordinates: {line!r}")
    return line[:space], decode_points(line[space + 1 :].strip())


def encode_entry(key: str, points: np.ndarray) -> str:
    return f"{key} {encode_points(points)}"


def reorder_points(points: np.ndarray, positions: List[int]) -> np.ndarray:
    """Place ``points[i]`` at ``positions[i]`` in a new array."""
    reordered = np.zeros_like(points)
    for idx, pos in enumerate(positions):
        reordered[pos] = points[idx]
    return reordered


class TemplateLibrary:
    """
    In-memory table of identity templates.

    A key may map to several coordinate sets (alternative layouts); they are
    kept in insertion order. The library is meant to be filled once and then
    shared for lookups.

    Attributes:
        entries: Ordered mapping from canonical SMILES to coordinate arrays.
    """

    def __init__(self, entries: Optional[Dict[str, List[np.ndarray]]] = None):
        self.entries: Dict[str, List[np.ndarray]] = OrderedDict()
        if entries:
            for key, point_sets in entries.items():
                for points in point_sets:
                    self.add_entry(key, points)

    def __len__(self) -> int:
        return sum(len(point_sets) for point_sets in self.entries.values())

    def __contains__(self, key: str) -> bool:
        return key in self.entries

    def keys(self) -> List[str]:
        return list(self.entries)

    def add_entry(self, key: str, points: np.ndarray) -> None:
        """Add coordinates under an existing canonical key."""
        self.entries.setdefault(key, []).append(np.asarray(points, dtype=float))

    def create_entry(self, mol: Molecule) -> Optional[Tuple[str, np.ndarray]]:
        """
        Build the (key, points) entry for a structure with 2D coordinates.

        Returns:
            The entry, or None if an atom has no point or RDKit cannot
            canonicalise the structure.
        """
        if not mol.has_coordinates():
            warnings.warn(
                f"Skipping template for {mol.name or 'structure'}: "
                "not all atoms have 2D coordinates"
            )
            return None
        try:
            key, positions = canonical_smiles(mol)
        except (RuntimeError, ValueError) as e:
            logger.debug("Could not canonicalise template structure: %s", e)
            return None
        points = np.zeros((mol.num_atoms, 2))
        for idx, atom in enumerate(mol.atoms):
            points[positions[idx]] = atom.point
        return key, points

    def add(self, mol: Molecule) -> bool:
        """
        Add the layout of ``mol`` to the library.

        Returns:
            True if an entry was added.
        """
        entry = self.create_entry(mol)
        if entry is None:
            return False
        self.add_entry(*entry)
        return True

    def add_library(self, other: "TemplateLibrary") -> "TemplateLibrary":
        """Merge all entries of ``other`` into this library."""
        for key, point_sets in other.entries.items():
            for points in point_sets:
                self.add_entry(key, points)
        return self

    def get_coordinates(self, mol: Molecule) -> List[np.ndarray]:
        """
        All stored layouts of ``mol``, ordered like its atoms.

        Args:
            mol: Query structure (coordinates are not required).

        Returns:
            List of (N, 2) arrays, empty when there is no template.
        """
        try:
            key, positions = canonical_smiles(mol)
        except (RuntimeError, ValueError) as e:
            logger.debug("Template lookup failed: %s", e)
            return []
        point_sets = self.entries.get(key)
        if not point_sets:
            logger.debug("No template for %s", key)
            return []
        result = []
        for points in point_sets:
            if len(points) != mol.num_atoms:
                continue
            result.append(points[positions].copy())
        return result

    def assign_layout(self, mol: Molecule) -> bool:
        """
        Set the atom points of ``mol`` from the first matching template.

        Returns:
            True if a template was found and applied.
        """
        matches = self.get_coordinates(mol)
        if not matches:
            return False
        mol.set_coordinates(matches[0])
        return True

    def update(self) -> "TemplateLibrary":
        """
        Re-key every entry with the current canonical SMILES.

        Keys are parsed, canonicalised again and the points re-ordered to
        the new output order. Use this after the canonicalisation changed or
        for libraries written by hand with points in SMILES input order.
        """
        from structure_layout.io import from_smiles

        updated: Dict[str, List[np.ndarray]] = OrderedDict()
        for key, point_sets in self.entries.items():
            mol = from_smiles(key, sanitize=False)
            try:
                new_key, positions = canonical_smiles(mol)
            except (RuntimeError, ValueError) as e:
                warnings.warn(f"Dropping template {key}: {e}")
                continue
            for points in point_sets:
                if len(points) != mol.num_atoms:
                    warnings.warn(f"Dropping template {key}: atom count mismatch")
                    continue
                updated.setdefault(new_key, []).append(
                    reorder_points(points, positions)
                )
        self.entries = updated
        return self

    def serialize(self) -> List[str]:
        """One text line per entry."""
        return [
            encode_entry(key, points)
            for key, point_sets in self.entries.items()
            for points in point_sets
        ]

    @classmethod
    def deserialize(cls, lines: Iterable[str]) -> "TemplateLibrary":
        """Build a library from text lines, skipping blanks and ``#`` comments."""
        library = cls()
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            library.add_entry(*decode_entry(line))
        return library

    def store(self, filename: Union[str, Path]) -> Path:
        """Write the library to a text file and return its path."""
        filepath = Path(filename)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text("\n".join(self.serialize()) + "\n", encoding="utf-8")
        return filepath

    @classmethod
    def load(cls, filename: Union[str, Path]) -> "TemplateLibrary":
        """
        Load a library from a text file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        filepath = Path(filename)
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filename}")
        with open(filepath, encoding="utf-8") as f:
            return cls.deserialize(f)

    @classmethod
    def load_resource(cls, name: str) -> "TemplateLibrary":
        """Load one of the template files bundled with the package."""
        return cls.load(DATA_DIR / name)


@lru_cache(maxsize=None)
def default_templates() -> TemplateLibrary:
    """Bundled ring system templates (loaded and re-keyed on first use)."""
    return TemplateLibrary.load_resource(RING_TEMPLATES).update()


@lru_cache(maxsize=None)
def default_macrocycle_templates() -> TemplateLibrary:
    """Bundled macrocycle outline templates (loaded on first use)."""
    return TemplateLibrary.load_resource(MACROCYCLE_TEMPLATES).update()
