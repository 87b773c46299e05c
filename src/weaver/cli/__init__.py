import typer
from typing_extensions import Annotated
from weaver.cli.check import check

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv())

app = typer.Typer(
    help="Weaver: page composition operator for Kubernetes",
    add_completion=False,
)

app.command("check")(check)


@app.command("operator")
def run_operator():
    """Run the Kubernetes operator (connects to cluster)."""
    from weaver.main import main

    main()


@app.command("generate-crds")
def generate_crds(
    output: Annotated[
        str, typer.Option("-o", "--output", help="Output directory")
    ] = "crds/generated",
    force: Annotated[bool, typer.Option("--force", help="Force regeneration")] = False,
    validate: Annotated[
        bool, typer.Option("--validate", help="Validate generated CRDs")
    ] = False,
):
    """Generate CRD YAML files from pydantic models."""
    from pathlib import Path
    from weaver.crd.generator import CRDManager

    output_dir = Path(output)
    manager = CRDManager(output_dir=output_dir)

    try:
        success = manager.generate_all_crds(force=force)
    except (OSError, ValueError) as e:
        typer.echo(f"Failed to generate CRDs: {e}")
        raise typer.Exit(1)

    if not success:
        typer.echo("No CRDs generated (models unchanged)")
        return

    typer.echo(f"CRDs generated successfully in {output_dir}")
    if validate:
        if manager.validate_generated_crds():
            typer.echo("CRD validation passed")
        else:
            typer.echo("CRD validation failed")
            raise typer.Exit(1)


@app.command("validate-models")
def validate_models():
    """Validate CRD models without generating files."""
    from weaver.crd.generator import CRDManager

    manager = CRDManager()
    try:
        crds = manager.get_crds_as_dict()
    except ValueError as e:
        typer.echo(f"Model validation failed: {e}")
        raise typer.Exit(1)

    models = manager.registry.get_all_models()
    typer.echo(f"Validated {len(models)} CRD models")
    for key in models.keys():
        typer.echo(f"  - {key}")
    typer.echo(f"Generated {len(crds)} CRDs in memory")
