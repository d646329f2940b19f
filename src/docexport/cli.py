from __future__ import annotations

import json
import re
from typing import Any, List, Optional

import typer
from bson import json_util
from typer import Argument, Option

from .auth import build_session
from .config.loader import load_config, validate_for_export
from .connectors import build_source
from .core.errors import DocExportError, get_exit_code
from .export.orchestrator import ExportRequest, export_collection
from .export.planner import plan_upload
from .exporters import build_store
from .observability.logging import get_logger, log_config_fingerprint, redact, set_verbose

app = typer.Typer(
    name="docexport",
    help="Export a MongoDB collection to S3 as one JSON document",
    no_args_is_help=True,
    add_completion=False,
)

_SIZE_UNITS = {"": 1, "b": 1, "kib": 1024, "mib": 1024**2, "gib": 1024**3, "kb": 1000, "mb": 1000**2, "gb": 1000**3}


def _parse_size(text: str) -> int:
    m = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*", text)
    if not m or m.group(2).lower() not in _SIZE_UNITS:
        raise typer.BadParameter(f"invalid size {text!r}; use bytes or a KiB/MiB/GiB suffix")
    return int(float(m.group(1)) * _SIZE_UNITS[m.group(2).lower()])


def _export_overrides(
    *,
    collection: Optional[str],
    filter: Optional[str],
    key: Optional[str],
    prefix: Optional[str],
    wrapper_key: Optional[str],
    no_wrapper: bool,
    batch_size: Optional[int],
    compress: Optional[bool],
    metadata: Optional[bool],
) -> dict[str, Any]:
    export: dict[str, Any] = {}
    if collection is not None:
        export["collection"] = collection
    if filter is not None:
        export["filter"] = filter
    if key is not None:
        export["key"] = key
    if prefix is not None:
        export["prefix"] = prefix
    if no_wrapper:
        export["datawrapper_key"] = None
    elif wrapper_key is not None:
        export["datawrapper_key"] = wrapper_key
    if batch_size is not None:
        export["batch_size"] = batch_size
    if compress is not None:
        export["compression"] = compress
    if metadata is not None:
        export["include_metadata"] = metadata
    return {"export": export} if export else {}


def _fail(exc: BaseException) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(get_exit_code(exc))


@app.command("run")
def run_export(
    collection: Optional[str] = Option(None, "--collection", help="Collection to export"),
    filter: Optional[str] = Option(None, "--filter", help="Query filter as (extended) JSON"),
    key: Optional[str] = Option(None, "--key", help="Destination object key"),
    prefix: Optional[str] = Option(None, "--prefix", help="Prefix prepended to the destination key"),
    wrapper_key: Optional[str] = Option(None, "--wrapper-key", help="Field name wrapping the record array"),
    no_wrapper: bool = Option(False, "--no-wrapper", help="Emit records without a wrapper object"),
    batch_size: Optional[int] = Option(None, "--batch-size", min=1, help="Cursor batch size"),
    compress: Optional[bool] = Option(None, "--compress/--no-compress", help="Gzip the exported object"),
    metadata: Optional[bool] = Option(None, "--metadata/--no-metadata", help="Attach export metadata to the object"),
    max_workers: Optional[int] = Option(None, "--max-workers", min=1, help="Concurrent part uploads"),
    config: str = Option("docexport.yaml", "-c", "--config", help="Path to config file"),
    set_overrides: Optional[List[str]] = Option(None, "--set", help="Override config values (key.path=value)"),
    dry_run: bool = Option(False, "--dry-run", help="Resolve the request and print it without exporting"),
    verbose: bool = Option(False, "-v", "--verbose", help="Enable verbose output"),
) -> None:
    """Run one export."""
    set_verbose(verbose)
    logger = get_logger()
    overrides = _export_overrides(
        collection=collection,
        filter=filter,
        key=key,
        prefix=prefix,
        wrapper_key=wrapper_key,
        no_wrapper=no_wrapper,
        batch_size=batch_size,
        compress=compress,
        metadata=metadata,
    )
    if max_workers is not None:
        overrides["upload"] = {"max_workers": max_workers}

    try:
        cfg = load_config(config, overrides=overrides, set_overrides=set_overrides)
        validate_for_export(cfg)
        request = ExportRequest.from_settings(cfg.export)
    except DocExportError as e:
        raise _fail(e)

    log_config_fingerprint(
        {
            "export": request.describe(),
            "s3": cfg.s3.model_dump(),
            "auth": cfg.auth.model_dump(),
            "upload": cfg.upload.model_dump(),
        }
    )
    if dry_run:
        typer.echo(json.dumps(request.describe(), indent=2))
        return

    source = build_source(cfg.mongo)
    try:
        session = build_session(cfg.auth, region=cfg.s3.region)
        store = build_store(cfg, session=session)
        outcome = export_collection(request, source, store, max_workers=cfg.upload.max_workers)
    except DocExportError as e:
        logger.error("Export job failed", error=str(e), error_type=type(e).__name__)
        raise _fail(e)
    finally:
        source.close()

    typer.echo(
        f"✓ Exported {outcome.records} records to {outcome.uri} "
        f"({outcome.payload_bytes} bytes, {outcome.upload_type}, {outcome.parts} part(s), {outcome.duration_ms:.0f}ms)"
    )


@app.command("plan")
def show_plan(
    size: str = Argument(..., help="Payload size in bytes, or with a KiB/MiB/GiB suffix"),
    json_output: bool = Option(False, "--json", help="Emit JSON"),
) -> None:
    """Show how a payload of SIZE would be uploaded."""
    plan = plan_upload(_parse_size(size))
    if json_output:
        typer.echo(json.dumps(plan.as_dict(), indent=2))
        return
    typer.echo(f"{plan.upload_type} upload of {plan.total_size} bytes in {len(plan)} part(s)")
    for part in plan:
        typer.echo(f"  part {part.part_number}: offset={part.offset} length={part.length}")


@app.command("config")
def show_config(
    config: str = Option("docexport.yaml", "-c", "--config", help="Path to config file"),
    set_overrides: Optional[List[str]] = Option(None, "--set", help="Override config values (key.path=value)"),
) -> None:
    """Print the effective configuration with secrets redacted."""
    try:
        cfg = load_config(config, set_overrides=set_overrides)
    except DocExportError as e:
        raise _fail(e)
    data = json.loads(json_util.dumps(cfg.model_dump()))
    typer.echo(json.dumps(redact(data), indent=2))


@app.callback(invoke_without_command=True)
def version_callback(
    ctx: typer.Context,
    version: bool = Option(False, "--version", help="Show version and exit"),
) -> None:
    """docexport - MongoDB to S3 export."""
    if version:
        import importlib.metadata as importlib_metadata

        try:
            version_str = importlib_metadata.version("docexport")
        except importlib_metadata.PackageNotFoundError:
            version_str = "0.0.0+local"
        typer.echo(version_str)
        raise typer.Exit(0)


def main() -> None:
    """Main entry point for the docexport CLI."""
    app()


if __name__ == "__main__":
    main()
