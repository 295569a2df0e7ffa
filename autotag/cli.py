#!/usr/bin/env python3
"""
autotag - automatic document tags

Command-line interface for suggesting and applying tags to text documents.
Reads documents from files or stdin, composes with pipes.
"""
import sys
import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.table import Table

from autotag.auto_tag import auto_tag_document
from autotag.config import AutotagConfig, ConfigError, ExtractionConfig, get_config, init_config
from autotag.dispatcher import ExtractionDispatcher, create_default_dispatcher

logger = logging.getLogger(__name__)


console = Console()


def read_content(path: Optional[str]) -> str:
    """Read document content from a file path, or stdin for None / '-'."""
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def split_tags(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [t.strip() for t in value.split(",") if t.strip()]


def resolve_extraction(args) -> ExtractionConfig:
    """Build the per-call extraction config from settings and CLI overrides."""
    extraction = get_config().extraction_config()
    if getattr(args, "auto", False):
        extraction = ExtractionConfig(
            method=extraction.method,
            api_key=extraction.api_key,
            auto_apply=True
        )
    return extraction


def build_dispatcher() -> ExtractionDispatcher:
    return create_default_dispatcher(get_config().completion_config())


def output_tags(tags: List[str], format: str = "table", title: str = "Suggested Tags"):
    """Output a tag list in the specified format."""
    if format == "json":
        print(json.dumps(tags))
    elif format == "plain":
        for tag in tags:
            print(tag)
    else:
        if not tags:
            console.print("[yellow]No suggested tags found[/yellow]")
            return
        table = Table(title=title)
        table.add_column("#", style="cyan")
        table.add_column("Tag", style="green")
        for i, tag in enumerate(tags, 1):
            table.add_row(str(i), tag)
        console.print(table)


def cmd_suggest(args):
    """Suggest tags for a document."""
    content = read_content(args.file)
    extraction = resolve_extraction(args)

    with build_dispatcher() as dispatcher:
        tags = dispatcher.extract(content, extraction)

    output_tags(tags, args.output)


def cmd_apply(args):
    """Apply tags to a document the way a save would."""
    document = {
        "id": args.file,
        "content": read_content(args.file),
        "tags": split_tags(args.tags),
    }
    selected = split_tags(args.select) if args.select is not None else None
    extraction = resolve_extraction(args)

    with build_dispatcher() as dispatcher:
        document = auto_tag_document(document, extraction, selected_tags=selected, dispatcher=dispatcher)

    output_tags(document["tags"], args.output, title="Document Tags")


def cmd_serve(args):
    """Start the suggestion API server."""
    from autotag.serve import run_server

    config = get_config()
    run_server(
        config.extraction_config(),
        dispatcher=build_dispatcher(),
        host=args.host if args.host is not None else config.server_host,
        port=args.port if args.port is not None else config.server_port,
    )


def cmd_config(args):
    """Manage configuration."""
    config = get_config()

    if args.action == "show":
        if args.key:
            if not hasattr(config, args.key):
                console.print(f"[red]Unknown config key: {args.key}[/red]")
                sys.exit(1)
            print(getattr(config, args.key))
        else:
            data = config.to_dict()
            if data.get("api_key"):
                data["api_key"] = "***"
            print(json.dumps(data, indent=2))

    elif args.action == "set":
        if not args.key or args.value is None:
            console.print("[red]Usage: autotag config set KEY VALUE[/red]")
            sys.exit(1)
        # file values only; env and CLI overrides stay out of the saved file
        config_path = Path(args.config) if args.config else AutotagConfig.user_config_path()
        file_config = AutotagConfig.from_file(config_path)
        file_config.set_value(args.key, args.value)
        file_config.save(config_path)
        config.set_value(args.key, args.value)
        console.print(f"[green]Set {args.key} = {args.value}[/green]")

    elif args.action == "init":
        config_path = AutotagConfig.user_config_path()
        AutotagConfig.from_file(config_path).save(config_path)
        console.print(f"[green]Created config at {config_path}[/green]")


def cmd_plugin(args):
    """List registered extraction plugins."""
    dispatcher = build_dispatcher()
    info = dispatcher.registry.get_plugin_info("tag_extractor")["tag_extractor"]

    if args.output == "json":
        print(json.dumps(info, indent=2))
        return

    table = Table(title="Tag Extractors")
    table.add_column("Method", style="cyan")
    table.add_column("Version", style="white")
    table.add_column("Description", style="green")
    table.add_column("Enabled", style="yellow")
    for entry in info:
        table.add_row(entry["method"], entry["version"], entry["description"],
                      "yes" if entry["enabled"] else "no")
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autotag",
        description="autotag - suggest and apply tags to text documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  autotag suggest post.html
  cat post.md | autotag suggest --output json
  autotag --method remote --api-key sk-... suggest post.html
  autotag apply post.html --tags "news,draft" --auto
  autotag apply post.html --select "python,testing"
  autotag serve --port 3000
  autotag config set method remote

Configuration:
  Config file: ~/.config/autotag/config.toml or ./autotag.toml
  Environment: AUTOTAG_METHOD, AUTOTAG_API_KEY, AUTOTAG_AUTO_APPLY
        """
    )

    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output", choices=["table", "json", "plain"],
                        help="Output format")
    parser.add_argument("--method", choices=["builtin", "remote"],
                        help="Extraction method (overrides config)")
    parser.add_argument("--api-key", help="API key for the remote method")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    suggest_parser = subparsers.add_parser("suggest", help="Suggest tags for a document")
    suggest_parser.add_argument("file", nargs="?", help="Document file (default: stdin)")
    suggest_parser.set_defaults(func=cmd_suggest)

    apply_parser = subparsers.add_parser("apply", help="Apply tags to a document as on save")
    apply_parser.add_argument("file", help="Document file ('-' for stdin)")
    apply_parser.add_argument("--tags", help="Existing tags (comma-separated)")
    apply_parser.add_argument("--select", help="Tags picked by the user (comma-separated)")
    apply_parser.add_argument("--auto", action="store_true",
                              help="Apply suggestions even if auto_apply is off")
    apply_parser.set_defaults(func=cmd_apply)

    serve_parser = subparsers.add_parser("serve", help="Start the suggestion API server")
    serve_parser.add_argument("--port", "-p", type=int, help="Port to listen on")
    serve_parser.add_argument("--host", "-H", help="Host to bind to")
    serve_parser.set_defaults(func=cmd_serve)

    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument("action", choices=["show", "set", "init"])
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    plugin_parser = subparsers.add_parser("plugin", help="List extraction plugins")
    plugin_parser.add_argument("plugin_command", nargs="?", choices=["list"], default="list")
    plugin_parser.set_defaults(func=cmd_plugin)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = init_config(
            config_file=Path(args.config) if args.config else None,
            output_format=args.output,
            method=args.method,
            api_key=args.api_key,
        )
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, str(config.log_level).upper(), logging.INFO),
        format='%(levelname)s: %(message)s'
    )

    if not args.output:
        args.output = config.output_format

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
