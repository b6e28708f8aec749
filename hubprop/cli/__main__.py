from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

from hubprop.config.loader import ConfigError, Settings, load_settings
from hubprop.csv.reader import CsvReadError, read_csv_file
from hubprop.gateway.service import Gateway
from hubprop.logging.error_log import ErrorLogBuffer
from hubprop.logging.init import log_summary, setup_logging
from hubprop.models.upload_result import RunResult
from hubprop.services.builder import build_property_records
from hubprop.services.controller import CUSTOM_OBJECT_TYPE, SessionController
from hubprop.services.normalizer import normalize_table
from hubprop.services.summary import render_summary_line

"""CLI entrypoint.

    python -m hubprop.cli inspect  FILE
    python -m hubprop.cli generate FILE [-o OUT] [--include-defaults]
    python -m hubprop.cli upload   FILE --object-type contacts
    python -m hubprop.cli upload   FILE --object-type custom --custom-object 2-1234
    python -m hubprop.cli serve    [--host H] [--port P]

The HubSpot API key is read from HUBSPOT_API_KEY (.env is loaded first).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_UPSTREAM_FAILURE = 2


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env via python-dotenv; failures only produce a warning."""
    try:
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
    except OSError as e:  # pragma: no cover
        print(f"WARNING: failed to load .env via python-dotenv: {e}")


def _make_gateway(settings: Settings) -> Gateway:
    return Gateway(settings)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="hubprop", description="HubSpot bulk property uploader")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help="YAML config file (default: config/hubprop.yml)")
    sub = p.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="Print the normalized table then exit")
    inspect.add_argument("file", type=Path)
    inspect.add_argument("--rows", type=int, default=3, help="Number of sample rows")

    for name, text in (("generate", "Write the batch-create JSON body"),
                       ("upload", "Upload properties to HubSpot")):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("file", type=Path)
        cmd.add_argument("--include-defaults", action="store_true",
                         help="Keep rows flagged 'HubSpot defined'")
        if name == "generate":
            cmd.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: stdout)")
        else:
            cmd.add_argument("--object-type", required=True, help="contacts, companies, ... or 'custom'")
            cmd.add_argument("--custom-object", default=None, help="objectTypeId when --object-type=custom")

    serve = sub.add_parser("serve", help="Run the HTTP gateway")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    return p.parse_args(argv)


def _exclude_defaults(args: argparse.Namespace, settings: Settings) -> bool:
    return settings.exclude_default_properties and not args.include_defaults


def _inspect(args: argparse.Namespace, settings: Settings) -> int:
    raw = read_csv_file(args.file)
    table = normalize_table(raw.headers, raw.rows, settings.exclude_default_properties)
    print(f"FILE: {args.file.name} rows={len(raw.rows)}")
    if table is None:
        print("  no table")
        return EXIT_SUCCESS
    print(f"  headers={list(table.headers)}")
    print(f"  properties={len(table.rows)}")
    for row in table.rows[: args.rows]:
        print("    sample_row=", dict(zip(table.headers, row)))
    return EXIT_SUCCESS


def _generate(args: argparse.Namespace, settings: Settings, issues: ErrorLogBuffer) -> tuple[int, RunResult]:
    start = time.perf_counter()
    raw = read_csv_file(args.file)
    table = normalize_table(raw.headers, raw.rows, _exclude_defaults(args, settings))
    records = build_property_records(table, issues, source=args.file.name)
    body = json.dumps({"inputs": [r.to_dict() for r in records]}, ensure_ascii=False, indent=2)
    if args.output is None:
        print(body)
    else:
        args.output.write_text(body + "\n", encoding="utf-8")
    result = RunResult(
        rows=len(table or ()),
        properties=len(records),
        option_errors=len(issues),
        created=0,
        elapsed_seconds=time.perf_counter() - start,
    )
    return EXIT_SUCCESS, result


async def _upload(args: argparse.Namespace, settings: Settings, issues: ErrorLogBuffer, logger) -> tuple[int, RunResult]:
    start = time.perf_counter()
    controller = SessionController(
        _make_gateway(settings),
        exclude_default_properties=_exclude_defaults(args, settings),
        issues=issues,
    )
    controller.load_csv(args.file.read_bytes(), source=args.file.name)
    if controller.state.raw_table is None:
        for note in controller.state.notifications:
            logger.error(note.description)
        return EXIT_FATAL, RunResult(0, 0, 0, 0, time.perf_counter() - start)

    await controller.select_object_type(args.object_type)
    if args.object_type == CUSTOM_OBJECT_TYPE:
        controller.select_custom_object(args.custom_object)
    state = controller.state
    if state.lookup_error:
        logger.warning(f"group lookup: {state.lookup_error}")

    created = await controller.upload()
    records = controller.state.records or ()
    if state.group_names:
        known = set(state.group_names)
        for r in records:
            if r.group_name not in known:
                logger.warning(f"property '{r.name}' uses unknown group '{r.group_name}'")
    for note in controller.state.notifications:
        if note.variant == "destructive":
            logger.error(note.description)
        else:
            logger.info(note.description)

    result = RunResult(
        rows=len(controller.state.table or ()),
        properties=len(records),
        option_errors=len(issues),
        created=created or 0,
        elapsed_seconds=time.perf_counter() - start,
    )
    return (EXIT_SUCCESS if created is not None else EXIT_UPSTREAM_FAILURE), result


def _serve(args: argparse.Namespace, settings: Settings) -> int:  # pragma: no cover (blocking server)
    import uvicorn

    from hubprop.gateway.app import create_app

    uvicorn.run(
        create_app(settings),
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
    )
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む (テストの cli_main([...]) 対策)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        for h in logger.handlers:
            h.setLevel("DEBUG")
        logger.setLevel("DEBUG")
        logger.debug("debug mode enabled")

    if args.command == "serve":
        return _serve(args, settings)

    if args.command == "upload" and args.object_type == CUSTOM_OBJECT_TYPE and not args.custom_object:
        logger.error("--custom-object is required when --object-type is 'custom'")
        return EXIT_FATAL

    issues = ErrorLogBuffer()
    try:
        if args.command == "inspect":
            return _inspect(args, settings)
        if args.command == "generate":
            code, result = _generate(args, settings, issues)
        else:
            code, result = asyncio.run(_upload(args, settings, issues, logger))
    except CsvReadError as e:
        logger.error(f"input: {e}")
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL

    counts = issues.counts()
    path = issues.flush()
    if path is not None:
        detail = ", ".join(f"{k}={v}" for k, v in sorted(counts.items()))
        logger.warning(f"row-level issues written to {path} ({detail})")
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return code


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
