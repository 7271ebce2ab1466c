from __future__ import annotations

import argparse
import asyncio
import subprocess
import sys
from pathlib import Path
from typing import Optional

from PIL import features
from rich.console import Console
from rich.table import Table

from .core.config import get_settings
from .core.db import create_engine, create_schema, session_scope
from .core.logging import configure_logging, level_from_name
from .core.storage import get_storage
from .db.repository import GalleryRepository
from .domain import ArchiveError, ArchiveExtractor, IngestError, infer_set_structure
from .services.ingest_service import IngestService

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    configure_logging(level=level_from_name(settings.log_level), json_output=False)
    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gallery media ingestion CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe and WebP support")

    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Show the sets a ZIP archive would produce")
    inspect_parser.add_argument("--file", required=True, help="Path to the ZIP archive")
    inspect_parser.set_defaults(func=_cmd_inspect)

    ingest_parser = subparsers.add_parser("ingest", help="Ingest a ZIP archive into a model's gallery")
    ingest_parser.add_argument("--file", required=True, help="Path to the ZIP archive")
    ingest_parser.add_argument("--model-id", type=int, required=True, help="Target model id")
    ingest_parser.add_argument(
        "--remove",
        action="store_true",
        help="Delete the archive afterwards, as the upload endpoint does.",
    )
    ingest_parser.set_defaults(func=_cmd_ingest)

    model_parser = subparsers.add_parser("create-model", help="Create a model (and optionally its studio)")
    model_parser.add_argument("--name", required=True)
    model_parser.add_argument("--studio", help="Create a studio with this name and attach the model to it")
    model_parser.set_defaults(func=_cmd_create_model)

    init_parser = subparsers.add_parser("init-db", help="Create the database tables")
    init_parser.set_defaults(func=_cmd_init_db)
    return parser


def _cmd_inspect(args: argparse.Namespace) -> None:
    """Print the inferred set structure of an archive without touching the database."""
    archive_path = Path(args.file).expanduser().resolve()
    try:
        with ArchiveExtractor(archive_path) as extractor:
            structure = infer_set_structure(extractor.entries())
    except ArchiveError as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(2)

    table = Table(title=archive_path.name)
    table.add_column("Set")
    table.add_column("Files", justify="right")
    table.add_column("Bytes", justify="right")
    for set_name, files in structure.sets.items():
        table.add_row(set_name, str(len(files)), str(sum(item.size for item in files)))
    console.print(table)
    for message in structure.errors:
        console.print(f"[yellow]{message}[/]")


def _cmd_ingest(args: argparse.Namespace) -> None:
    archive_path = Path(args.file).expanduser().resolve()
    settings = get_settings()

    async def _run():
        async with session_scope(settings) as session:
            service = IngestService(settings, get_storage(settings), session)
            return await service.ingest_archive(
                model_id=args.model_id,
                archive_path=archive_path,
                source_name=archive_path.name,
                remove_archive=args.remove,
            )

    try:
        result = asyncio.run(_run())
    except IngestError as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(2)
    console.print_json(data=result.as_dict())


def _cmd_create_model(args: argparse.Namespace) -> None:
    settings = get_settings()

    async def _run() -> dict:
        async with session_scope(settings) as session:
            repo = GalleryRepository(session)
            studio_id = None
            if args.studio:
                studio = await repo.create_studio(args.studio)
                studio_id = studio.id
            model = await repo.create_model(args.name, studio_id=studio_id)
            await session.commit()
            return {"id": model.id, "name": model.name, "slug": model.slug, "studioId": studio_id}

    console.print_json(data=asyncio.run(_run()))


def _cmd_init_db(args: argparse.Namespace) -> None:
    settings = get_settings()

    async def _run() -> None:
        engine = create_engine(settings)
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(_run())
    console.print(f"[green]Schema ready at {settings.database_url}[/]")


def _run_environment_check() -> None:
    """Check for the presence of required external dependencies."""
    settings = get_settings()
    checks = {
        "ffmpeg": [settings.ffmpeg_binary, "-version"],
        "ffprobe": [settings.ffprobe_binary, "-version"],
    }
    results = {}
    for label, cmd in checks.items():
        try:
            subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
            results[label] = True
        except (OSError, subprocess.CalledProcessError):
            results[label] = False
    results["Pillow WebP"] = bool(features.check("webp"))

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected; video thumbnails fall back to a placeholder.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
