"""
Command-Line Interface Module
=============================

Click-based CLI for 2D structure diagram generation.

Usage:
    structure-layout layout "c1ccccc1CCO" -o ethanol.csv
    structure-layout layout structures.smi -o layouts.sdf --bond-length 1.0
    structure-layout templates add drawn.sdf -o library.smi
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
import pandas as pd
from tqdm import tqdm

from structure_layout import __version__
from structure_layout.generator import StructureDiagramGenerator
from structure_layout.io import (
    export_to_csv,
    export_to_json,
    export_to_sdf,
    from_smiles,
    layout_to_dataframe,
    load_molecules,
)
from structure_layout.molecule import Molecule
from structure_layout.templates import (
    TemplateLibrary,
    default_macrocycle_templates,
    default_templates,
)


@click.group(invoke_without_command=True)
@click.option('--version', '-V', is_flag=True, help='Show version and exit.')
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """
    Structure Layout - 2D coordinate generation for chemical structure diagrams.

    Lays out molecules given only their connectivity: rings as regular
    polygons or from templates, chains as zigzags, with overlap
    refinement and wedge/hatch stereo labels.

    \b
    Examples:
        structure-layout layout "CC(=O)Oc1ccccc1C(=O)O"
        structure-layout layout structures.smi -o layouts.csv
        structure-layout info
    """
    if version:
        click.echo(f"structure-layout version {__version__}")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _read_input(source: str) -> List[Molecule]:
    if Path(source).exists():
        return load_molecules(source)
    return [from_smiles(source, name="input")]


@cli.command()
@click.argument('source')
@click.option('-o', '--output', type=click.Path(),
              help='Output file (.csv, .json, .sdf or .mol); prints a table if omitted.')
@click.option('--bond-length', default=1.5, type=float, show_default=True,
              help='Nominal bond length of the diagram.')
@click.option('--no-templates', is_flag=True,
              help='Do not look up ring system templates.')
@click.option('--no-refine', is_flag=True,
              help='Skip the overlap refinement.')
@click.option('-v', '--verbose', is_flag=True,
              help='Enable verbose output.')
@click.option('-q', '--quiet', is_flag=True,
              help='Suppress all output except errors.')
def layout(
    source: str,
    output: Optional[str],
    bond_length: float,
    no_templates: bool,
    no_refine: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Generate 2D coordinates for one or more structures.

    \b
    SOURCE: A SMILES string, or a .smi/.sdf file.

    \b
    Examples:
        structure-layout layout "C1CCCCC1" -o cyclohexane.json
        structure-layout layout library.smi -o library.sdf -q
    """
    if quiet:
        verbose = False
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    try:
        molecules = _read_input(source)
        generator = StructureDiagramGenerator(
            bond_length=bond_length,
            use_templates=not no_templates,
            refine=not no_refine,
            verbose=verbose,
        )
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not quiet:
        click.echo(f"Laying out {len(molecules)} structure(s)...")

    laid_out = []
    iterator = molecules
    if len(molecules) > 1 and not quiet:
        iterator = tqdm(molecules, desc="Generating layouts", unit="mol")
    for mol in iterator:
        try:
            laid_out.append(generator.generate_coordinates(mol))
        except ValueError as e:
            click.echo(f"Warning: {mol.name or 'structure'}: {e}", err=True)

    if not laid_out:
        click.echo("Error: No layouts generated.", err=True)
        sys.exit(1)

    if output is None:
        table = pd.concat([layout_to_dataframe(mol) for mol in laid_out], ignore_index=True)
        click.echo(table.to_string(index=False, float_format=lambda v: f"{v:.3f}"))
        return

    output_path = Path(output)
    suffix = output_path.suffix.lower()
    if suffix in ('.csv', '.json'):
        table = pd.concat([layout_to_dataframe(mol) for mol in laid_out], ignore_index=True)
        if suffix == '.csv':
            export_to_csv(table, output_path)
        else:
            export_to_json(table, output_path)
    elif suffix in ('.sdf', '.mol'):
        export_to_sdf(laid_out, output_path)
    else:
        click.echo(f"Error: Unknown output format '{suffix}'", err=True)
        sys.exit(1)

    if not quiet:
        click.echo(f"Saved: {output_path}")


@cli.group()
def templates() -> None:
    """Build and maintain ring system template libraries."""


@templates.command('add')
@click.argument('input_file', type=click.Path(exists=True))
@click.option('-o', '--output', required=True, type=click.Path(),
              help='Template library file to create or extend.')
def templates_add(input_file: str, output: str) -> None:
    """
    Add the drawn layouts of an SDF file to a template library.

    Existing entries of the output library are kept.
    """
    try:
        molecules = load_molecules(input_file)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    output_path = Path(output)
    library = TemplateLibrary.load(output_path) if output_path.exists() else TemplateLibrary()
    added = sum(1 for mol in molecules if library.add(mol))
    library.store(output_path)
    click.echo(f"Added {added} of {len(molecules)} template(s) to {output_path}")


@templates.command('update')
@click.argument('library_file', type=click.Path(exists=True))
@click.option('-o', '--output', type=click.Path(),
              help='Output file (default: overwrite the input).')
def templates_update(library_file: str, output: Optional[str]) -> None:
    """Re-key a template library with the current canonical SMILES."""
    try:
        library = TemplateLibrary.load(library_file).update()
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    output_path = library.store(output or library_file)
    click.echo(f"Saved {len(library)} template(s) to {output_path}")


@cli.command()
def info() -> None:
    """
    Display information about the package and its bundled templates.
    """
    click.echo(f"""
Structure Layout v{__version__}
{'='*50}

2D coordinate generation for chemical structure diagrams.

CAPABILITIES:
  • Ring systems as regular polygons (fused, bridged, spiro)
  • Template lookup for awkward ring systems and macrocycles
  • Zigzag chains with trans double bond handling
  • Overlap refinement by rotation, inversion, bending and stretching
  • Wedge/hatch labels for tetrahedral and allene-like centres
  • Salt layout with ion pairing and fragment tiling

BUNDLED TEMPLATES:
  Ring systems: {len(default_templates())}
  Macrocycles:  {len(default_macrocycle_templates())}

SUPPORTED FORMATS:
  Input:  SMILES, SMILES files, SDF
  Output: CSV, JSON, SDF/MOL

USAGE:
  structure-layout layout "c1ccccc1" -o benzene.csv
  structure-layout layout structures.smi -o layouts.sdf --verbose
""")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
