"""
I/O Module
==========

Conversion between RDKit molecules and the layout model, and export of
laid out structures.

Supported input formats:
- SMILES strings
- SMILES files (one structure per line, optional name after whitespace)
- RDKit molecules (including SDF records read through RDKit)

Supported output formats:
- CSV and JSON atom tables (pandas)
- SDF / MOL blocks with 2D coordinates and wedge labels
"""

import json
import warnings
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd
from rdkit import Chem
from rdkit.Geometry import Point3D

from structure_layout.molecule import (
    BondOrder,
    BondStereo,
    Configuration,
    DoubleBondStereo,
    Molecule,
    TetrahedralStereo,
    Winding,
)

_BOND_ORDERS = {
    Chem.BondType.SINGLE: BondOrder.SINGLE,
    Chem.BondType.DOUBLE: BondOrder.DOUBLE,
    Chem.BondType.TRIPLE: BondOrder.TRIPLE,
    Chem.BondType.QUADRUPLE: BondOrder.QUADRUPLE,
    Chem.BondType.AROMATIC: BondOrder.AROMATIC,
}

_RDKIT_BOND_TYPES = {order: rdkit_type for rdkit_type, order in _BOND_ORDERS.items()}

# bond stereo codes of the MDL molfile format
_MOLFILE_STEREO = {
    BondStereo.UP: 1,
    BondStereo.DOWN: 6,
    BondStereo.UP_OR_DOWN: 4,
    BondStereo.E_OR_Z: 3,
}

_BOND_DIRS = {
    BondStereo.UP: Chem.BondDir.BEGINWEDGE,
    BondStereo.DOWN: Chem.BondDir.BEGINDASH,
    BondStereo.UP_OR_DOWN: Chem.BondDir.UNKNOWN,
}


def _attach_point(atom: Chem.Atom) -> int:
    if atom.GetAtomicNum() != 0:
        return 0
    if atom.HasProp("molAttchpt"):
        return atom.GetIntProp("molAttchpt")
    return atom.GetAtomMapNum()


def _tetrahedral_stereo(rdmol: Chem.Mol) -> List[TetrahedralStereo]:
    """
    Tetrahedral descriptors with the neighbour order made explicit.

    Hydrogens are added so every centre lists all of its neighbours; added
    hydrogens are written back as the focus atom (implicit hydrogen).
    """
    n = rdmol.GetNumAtoms()
    with_h = Chem.AddHs(rdmol)
    elements = []
    for atom in with_h.GetAtoms():
        tag = atom.GetChiralTag()
        if tag == Chem.ChiralType.CHI_TETRAHEDRAL_CW:
            winding = Winding.CLOCKWISE
        elif tag == Chem.ChiralType.CHI_TETRAHEDRAL_CCW:
            winding = Winding.ANTICLOCKWISE
        else:
            continue
        focus = atom.GetIdx()
        if focus >= n:
            continue
        ligands = []
        for bond in atom.GetBonds():
            other = bond.GetOtherAtomIdx(focus)
            ligands.append(focus if other >= n else other)
        while len(ligands) < 4:
            ligands.append(focus)
        if len(ligands) != 4:
            continue
        elements.append(TetrahedralStereo(focus, tuple(ligands), winding))
    return elements


def _double_bond_stereo(rdmol: Chem.Mol, bond_index: dict) -> List[DoubleBondStereo]:
    elements = []
    ranked = False
    for bond in rdmol.GetBonds():
        stereo = bond.GetStereo()
        if stereo in (Chem.BondStereo.STEREONONE, Chem.BondStereo.STEREOANY):
            continue
        beg = bond.GetBeginAtomIdx()
        end = bond.GetEndAtomIdx()
        if stereo in (Chem.BondStereo.STEREOCIS, Chem.BondStereo.STEREOTRANS):
            first, second = bond.GetStereoAtoms()
            together = stereo == Chem.BondStereo.STEREOCIS
        else:
            if not ranked:
                Chem.AssignStereochemistry(rdmol, cleanIt=True, force=True)
                ranked = True
            first = _highest_ranked(rdmol, beg, end)
            second = _highest_ranked(rdmol, end, beg)
            if first is None or second is None:
                continue
            together = stereo == Chem.BondStereo.STEREOZ
        if rdmol.GetBondBetweenAtoms(beg, first) is None:
            first, second = second, first
        configuration = Configuration.TOGETHER if together else Configuration.OPPOSITE
        elements.append(
            DoubleBondStereo(bond_index[bond.GetIdx()], (first, second), configuration)
        )
    return elements


def _highest_ranked(rdmol: Chem.Mol, focus: int, exclude: int) -> Optional[int]:
    best = None
    best_rank = -1
    for nbr in rdmol.GetAtomWithIdx(focus).GetNeighbors():
        if nbr.GetIdx() == exclude:
            continue
        rank = nbr.GetIntProp("_CIPRank") if nbr.HasProp("_CIPRank") else nbr.GetIdx()
        if rank > best_rank:
            best, best_rank = nbr.GetIdx(), rank
    return best


def from_rdkit(rdmol: Chem.Mol, name: Optional[str] = None, kekulize: bool = True) -> Molecule:
    """
    Build a layout molecule from an RDKit molecule.

    Args:
        rdmol: Source molecule. Existing 2D coordinates are copied.
        name: Molecule name, defaults to the ``_Name`` property.
        kekulize: Use alternating single/double bonds for aromatic rings.

    Returns:
        The converted molecule with tetrahedral and double bond stereo.
    """
    if name is None:
        name = rdmol.GetProp("_Name") if rdmol.HasProp("_Name") else ""
    source = Chem.Mol(rdmol)
    if kekulize:
        try:
            Chem.Kekulize(source, clearAromaticFlags=False)
        except Chem.KekulizeException:
            source = Chem.Mol(rdmol)

    mol = Molecule(name=name)
    for atom in source.GetAtoms():
        mol.add_atom(
            atom.GetSymbol(),
            charge=atom.GetFormalCharge(),
            implicit_h=atom.GetTotalNumHs(),
            mass=atom.GetIsotope() or None,
            aromatic=atom.GetIsAromatic(),
            attach_point=_attach_point(atom),
        )
    bond_index = {}
    for bond in source.GetBonds():
        order = _BOND_ORDERS.get(bond.GetBondType(), BondOrder.SINGLE)
        bond_index[bond.GetIdx()] = mol.add_bond(
            bond.GetBeginAtomIdx(), bond.GetEndAtomIdx(), order
        )

    if source.GetNumConformers() and not source.GetConformer().Is3D():
        conf = source.GetConformer()
        for idx, atom in enumerate(mol.atoms):
            pos = conf.GetAtomPosition(idx)
            atom.point = (pos.x, pos.y)

    mol.stereo.extend(_tetrahedral_stereo(source))
    mol.stereo.extend(_double_bond_stereo(source, bond_index))
    return mol


def from_smiles(smiles: str, sanitize: bool = True, name: str = "") -> Molecule:
    """
    Parse a SMILES string into a layout molecule.

    Raises:
        ValueError: If RDKit cannot parse the SMILES.

    Example:
        >>> mol = from_smiles("CC(=O)O")
        >>> mol.num_atoms
        4
    """
    rdmol = Chem.MolFromSmiles(smiles, sanitize=sanitize)
    if rdmol is None:
        raise ValueError(f"Could not parse SMILES: {smiles}")
    if not sanitize:
        rdmol.UpdatePropertyCache(strict=False)
    return from_rdkit(rdmol, name=name, kekulize=sanitize)


def to_rdkit(mol: Molecule, conformer: bool = True) -> Chem.Mol:
    """
    Convert a layout molecule to an (unsanitised) RDKit molecule.

    Args:
        mol: Molecule to convert.
        conformer: Attach a 2D conformer when every atom has a point.

    Returns:
        RDKit molecule with bond directions set from the stereo labels.
    """
    rwmol = Chem.RWMol()
    for atom in mol.atoms:
        rdatom = Chem.Atom(atom.atomic_number)
        rdatom.SetFormalCharge(atom.charge)
        if atom.mass:
            rdatom.SetIsotope(atom.mass)
        if atom.implicit_h is not None:
            rdatom.SetNoImplicit(True)
            rdatom.SetNumExplicitHs(atom.implicit_h)
        rdatom.SetIsAromatic(atom.aromatic)
        if atom.attach_point:
            rdatom.SetIntProp("molAttchpt", atom.attach_point)
        rwmol.AddAtom(rdatom)
    for bond in mol.bonds:
        rwmol.AddBond(bond.begin, bond.end, _RDKIT_BOND_TYPES[bond.order])
        rdbond = rwmol.GetBondBetweenAtoms(bond.begin, bond.end)
        if bond.order is BondOrder.AROMATIC:
            rdbond.SetIsAromatic(True)
        if bond.stereo in _BOND_DIRS:
            rdbond.SetBondDir(_BOND_DIRS[bond.stereo])
        if bond.stereo in _MOLFILE_STEREO:
            rdbond.SetIntProp("_MolFileBondStereo", _MOLFILE_STEREO[bond.stereo])
        if bond.stereo is BondStereo.E_OR_Z:
            rdbond.SetStereo(Chem.BondStereo.STEREOANY)

    if conformer and mol.atoms and mol.has_coordinates():
        conf = Chem.Conformer(mol.num_atoms)
        conf.Set3D(False)
        for idx, atom in enumerate(mol.atoms):
            x, y = atom.point
            conf.SetAtomPosition(idx, Point3D(x, y, 0.0))
        rwmol.AddConformer(conf, assignId=True)
    rdmol = rwmol.GetMol()
    if mol.name:
        rdmol.SetProp("_Name", mol.name)
    return rdmol


def to_molblock(mol: Molecule) -> str:
    """MDL MOL block of a laid out molecule."""
    rdmol = to_rdkit(mol)
    rdmol.UpdatePropertyCache(strict=False)
    return Chem.MolToMolBlock(rdmol, kekulize=False)


def load_smiles_file(filename: Union[str, Path]) -> List[Molecule]:
    """
    Load molecules from a SMILES file.

    Each non-empty line holds a SMILES string optionally followed by a
    name. Lines starting with ``#`` are skipped.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If no valid molecules could be loaded.

    Example:
        >>> molecules = load_smiles_file('structures.smi')
    """
    filepath = Path(filename)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filename}")

    molecules = []
    with open(filepath, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split(None, 1)
            name = fields[1].strip() if len(fields) > 1 else f"mol_{lineno}"
            try:
                molecules.append(from_smiles(fields[0], name=name))
            except ValueError as e:
                warnings.warn(f"Skipping line {lineno}: {e}")

    if not molecules:
        raise ValueError(f"No valid molecules found in {filename}")
    return molecules


def load_from_sdf(filename: Union[str, Path]) -> List[Molecule]:
    """
    Load molecules, with their 2D coordinates, from an SDF file.

    Records RDKit cannot parse are skipped with a warning.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If no valid molecules could be loaded.
    """
    filepath = Path(filename)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filename}")

    molecules = []
    supplier = Chem.SDMolSupplier(str(filepath), removeHs=True)
    for i, rdmol in enumerate(supplier):
        if rdmol is None:
            warnings.warn(f"Skipping unreadable record {i + 1} in {filename}")
            continue
        name = rdmol.GetProp("_Name") if rdmol.HasProp("_Name") else f"mol_{i + 1}"
        molecules.append(from_rdkit(rdmol, name=name or f"mol_{i + 1}"))

    if not molecules:
        raise ValueError(f"No valid molecules found in {filename}")
    return molecules


def load_molecules(filename: Union[str, Path]) -> List[Molecule]:
    """
    Load molecules from a file, detecting the format from its extension.

    Supported formats: SDF/MOL, SMILES (.smi, .smiles, .txt)

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the format is not supported or nothing could be loaded.
    """
    suffix = Path(filename).suffix.lower()
    if suffix in (".sdf", ".mol"):
        return load_from_sdf(filename)
    elif suffix in (".smi", ".smiles", ".txt"):
        return load_smiles_file(filename)
    else:
        raise ValueError(f"Unsupported file format: {suffix}")


def layout_to_dataframe(mol: Molecule) -> pd.DataFrame:
    """
    One row per atom with its element and 2D coordinates.

    Raises:
        ValueError: If an atom has no coordinates.
    """
    coords = mol.coordinates()
    return pd.DataFrame(
        {
            "molecule": [mol.name] * mol.num_atoms,
            "atom_index": list(range(mol.num_atoms)),
            "symbol": [atom.symbol for atom in mol.atoms],
            "charge": [atom.charge for atom in mol.atoms],
            "x": coords[:, 0] if mol.num_atoms else [],
            "y": coords[:, 1] if mol.num_atoms else [],
        }
    )


def bonds_to_dataframe(mol: Molecule) -> pd.DataFrame:
    """One row per bond with its order and depiction label."""
    return pd.DataFrame(
        {
            "molecule": [mol.name] * mol.num_bonds,
            "bond_index": list(range(mol.num_bonds)),
            "begin": [bond.begin for bond in mol.bonds],
            "end": [bond.end for bond in mol.bonds],
            "order": [bond.order.name for bond in mol.bonds],
            "stereo": [bond.stereo.name for bond in mol.bonds],
        }
    )


def export_to_csv(
    df: pd.DataFrame, filename: Union[str, Path], float_format: str = "%.3f"
) -> None:
    """
    Export a layout table to a CSV file.

    Example:
        >>> export_to_csv(layout_to_dataframe(mol), 'layout.csv')
    """
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(filepath, index=False, float_format=float_format)


def export_to_json(
    df: pd.DataFrame,
    filename: Union[str, Path],
    orient: str = "records",
    indent: int = 2,
) -> None:
    """
    Export a layout table to a JSON file.

    Notes:
        The 'records' orientation produces a list of dictionaries, one per
        atom, which is most suitable for downstream processing.
    """
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    data = df.to_dict(orient=orient)

    def clean_nan(obj):
        if isinstance(obj, dict):
            return {k: clean_nan(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [clean_nan(v) for v in obj]
        elif isinstance(obj, float) and pd.isna(obj):
            return None
        return obj

    with open(filepath, "w") as f:
        json.dump(clean_nan(data), f, indent=indent)


def export_to_sdf(molecules: Sequence[Molecule], filename: Union[str, Path]) -> Path:
    """Write laid out molecules to an SDF file and return its path."""
    filepath = Path(filename)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        for mol in molecules:
            f.write(to_molblock(mol))
            f.write("$$$$\n")
    return filepath
