"""ODI CLI - on-demand responsive image derivatives.

Command-line interface for inspecting breakpoint plans and focal crops, and
for generating or purging derivatives of local images.
"""

from __future__ import annotations

import json
import mimetypes
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from odi import __version__
from odi.cache import DerivativeCache, DerivativeStorage
from odi.codec import PillowCodec
from odi.config import settings
from odi.exceptions import InvalidInputError, OdiError
from odi.geometry import FocalCropper, FocalPoint, Size
from odi.responsive import assemble_sources, resolve_breakpoints
from odi.sources import InMemorySourceStore, SourceAsset
from odi.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="odi",
    help="ODI: on-demand responsive image derivatives",
    add_completion=False,
)

# Source id given to a local image handled by the CLI
_LOCAL_SOURCE_ID = 1


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"odi {__version__}")


@app.command()
def plan(  # noqa: PLR0913
    size: Annotated[
        list[str] | None,
        typer.Option(
            "--size", "-s", help="Display size per breakpoint, e.g. 0=100% or 768=50%"
        ),
    ] = None,
    source: Annotated[
        list[str] | None,
        typer.Option("--source", help="Source id per breakpoint, e.g. 0=12"),
    ] = None,
    max_width: Annotated[
        str | None,
        typer.Option("--max-width", help="Contained max width, e.g. 1200 or 80vw"),
    ] = None,
    min_viewport: Annotated[
        int, typer.Option("--min-viewport", help="Smallest viewport width")
    ] = settings.MIN_VIEWPORT_WIDTH,
    max_viewport: Annotated[
        int, typer.Option("--max-viewport", help="Largest viewport width")
    ] = settings.MAX_VIEWPORT_WIDTH,
    step: Annotated[
        int, typer.Option("--step", help="Max distance between generated widths")
    ] = settings.WIDTH_STEP,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Resolve breakpoints and show the source clusters and widths to generate."""
    try:
        sources = {k: int(v) for k, v in _parse_breakpoints(source or ["0=1"]).items()}
        table = resolve_breakpoints(
            sources, _parse_breakpoints(size) if size else None, max_width
        )
        clusters = assemble_sources(table, min_viewport, max_viewport, step)
    except ValueError as e:
        _fail(str(e), json_output)

    if json_output:
        output = {
            "breakpoints": {
                str(threshold): {"source_id": bp.source_id, "width": bp.width}
                for threshold, bp in table.items()
            },
            "clusters": [
                {
                    "media_query": cluster.media_query,
                    "source_id": cluster.source_id,
                    "sizes": cluster.sizes,
                    "widths": list(cluster.widths),
                    "physical_widths": list(cluster.physical_widths),
                }
                for cluster in clusters
            ],
        }
        typer.echo(json.dumps(output, indent=2))
        return

    typer.echo("Breakpoints:")
    for threshold, bp in table.items():
        typer.echo(f"  {threshold:>5}px  source #{bp.source_id}  {bp.width}")
    typer.echo("Clusters:")
    for cluster in clusters:
        widths = ", ".join(str(width) for width in cluster.physical_widths)
        typer.echo(f"  {cluster.media_query}  source #{cluster.source_id}")
        if cluster.sizes:
            typer.echo(f"    sizes: {cluster.sizes}")
        typer.echo(f"    widths: {widths}")


@app.command()
def crop(
    width: Annotated[int, typer.Argument(help="Original width")],
    height: Annotated[int, typer.Argument(help="Original height")],
    target_width: Annotated[int, typer.Argument(help="Target width (0 = original)")],
    target_height: Annotated[int, typer.Argument(help="Target height (0 = original)")],
    focal: Annotated[
        str, typer.Option("--focal", "-f", help="Focal point as x,y in 0-1")
    ] = "0.5,0.5",
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Compute the focal crop rectangle for a target box."""
    try:
        region = FocalCropper().compute_crop(
            Size(width=width, height=height),
            target_width,
            target_height,
            _parse_focal(focal),
        )
    except ValueError as e:
        _fail(str(e), json_output)

    if json_output:
        typer.echo(json.dumps(region.model_dump()))
    else:
        typer.echo(f"x={region.x} y={region.y} width={region.width} height={region.height}")


@app.command()
def derive(  # noqa: PLR0913
    image: Annotated[
        Path,
        typer.Argument(
            exists=True, file_okay=True, dir_okay=False, readable=True, help="Original image"
        ),
    ],
    size: Annotated[str, typer.Argument(help="Size descriptor, e.g. '*600x400c/2x'")],
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Uploads root (default: image folder)"),
    ] = None,
    base_url: Annotated[
        str, typer.Option("--base-url", help="Public URL of the uploads root")
    ] = "",
    focal: Annotated[
        str | None, typer.Option("--focal", "-f", help="Focal point as x,y in 0-1")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"),
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Generate (or reuse) one derivative of a local image."""
    _configure_logging(verbose)
    logger = get_logger(__name__)

    codec = PillowCodec(jpeg_quality=settings.JPEG_QUALITY)
    try:
        asset = _local_asset(image, codec, _parse_focal(focal) if focal else None)
        cache = DerivativeCache(
            InMemorySourceStore([asset]),
            _local_storage(image, output_dir, base_url),
            codec=codec,
        )
        derivative = cache.get_image(asset.id, size)
    except (OdiError, ValueError) as e:
        logger.warning("Derive failed", error=str(e))
        _fail(str(e), json_output)

    if derivative is None:
        _fail(f"No derivative of {image.name} for {size}", json_output)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "path": str(derivative.path),
                    "url": derivative.url,
                    "width": derivative.width,
                    "height": derivative.height,
                }
            )
        )
    else:
        typer.echo(f"{derivative.path} ({derivative.width}x{derivative.height})")


@app.command()
def purge(
    image: Annotated[
        Path,
        typer.Argument(
            exists=True, file_okay=True, dir_okay=False, readable=True, help="Original image"
        ),
    ],
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Uploads root (default: image folder)"),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Delete every derivative of a local image."""
    deleted = _local_storage(image, output_dir, "").purge(image.name)
    if json_output:
        typer.echo(json.dumps({"deleted": [str(path) for path in deleted]}))
    else:
        typer.echo(f"Deleted {len(deleted)} derivative(s)")


# =============================================================================
# Helpers
# =============================================================================


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


def _fail(message: str, json_output: bool) -> NoReturn:
    if json_output:
        typer.echo(json.dumps({"error": message}))
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _parse_breakpoints(values: list[str]) -> dict[int, str]:
    """Parse ``threshold=value`` pairs."""
    parsed: dict[int, str] = {}
    for item in values:
        threshold, separator, value = item.partition("=")
        if not separator or not threshold.strip().isdigit() or not value.strip():
            raise InvalidInputError(f"Expected BREAKPOINT=VALUE, got {item!r}")
        parsed[int(threshold)] = value.strip()
    return parsed


def _parse_focal(value: str) -> FocalPoint:
    x, separator, y = value.partition(",")
    if not separator:
        raise InvalidInputError(f"Expected focal point as x,y, got {value!r}")
    return FocalPoint(x=float(x), y=float(y))


def _local_asset(
    image: Path,
    codec: PillowCodec,
    focal_point: FocalPoint | None,
) -> SourceAsset:
    size = codec.read_size(image)
    mime_type, _ = mimetypes.guess_type(image.name)
    return SourceAsset(
        id=_LOCAL_SOURCE_ID,
        file=image.name,
        path=image.resolve(),
        width=size.width,
        height=size.height,
        mime_type=mime_type or "application/octet-stream",
        focal_point=focal_point,
    )


def _local_storage(image: Path, output_dir: Path | None, base_url: str) -> DerivativeStorage:
    return DerivativeStorage(
        output_dir or image.resolve().parent,
        base_url,
        settings.UPLOAD_FOLDER,
    )
