"""CLI entrypoint for the Kusto MCP server."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Callable, Iterable

from kustomcp.config.serving_models import ServingConfig
from kustomcp.serving.mcp import server
from kustomcp.serving.mcp.errors import log_problem, problem

LOG = logging.getLogger("kustomcp.cli")

DEFAULT_PORT = 3000

CommandHandler = Callable[[argparse.Namespace], int]


# ---------------------------------------------------------------------------
# Argument parsing / logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure logging based on -v/--verbose count.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG. Records go to stderr so the stdio
    transport keeps stdout for protocol messages.
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _default_port() -> int:
    raw = os.environ.get("PORT")
    if raw is None or not raw.strip():
        return DEFAULT_PORT
    try:
        return int(raw)
    except ValueError as exc:
        message = f"PORT must be an integer, got: {raw!r}"
        raise ValueError(message) from exc


def _add_verbose_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kustomcp",
        description="MCP server for governed, read-only access to Kusto clusters.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_serve = subparsers.add_parser("serve", help="Run the MCP server")
    p_serve.add_argument(
        "--transport",
        choices=("stdio", "streamable-http"),
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    p_serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind host for streamable-http (default: 127.0.0.1)",
    )
    p_serve.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Bind port for streamable-http (default: $PORT or {DEFAULT_PORT})",
    )
    _add_verbose_arg(p_serve)
    p_serve.set_defaults(func=_cmd_serve)

    p_config = subparsers.add_parser("config", help="Print the effective configuration as JSON")
    _add_verbose_arg(p_config)
    p_config.set_defaults(func=_cmd_config)

    return parser


def make_parser() -> argparse.ArgumentParser:
    """
    Public helper to construct the CLI parser (for tests/tools).

    Returns
    -------
    argparse.ArgumentParser
        Configured parser instance.
    """
    return _make_parser()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_serve(args: argparse.Namespace) -> int:
    cfg = ServingConfig.from_env()
    port = args.port if args.port is not None else _default_port()
    LOG.info(
        "Starting Kusto MCP server transport=%s beta_tools=%s",
        args.transport,
        cfg.enable_beta_tools,
    )
    server.main(args.transport, cfg=cfg, host=args.host, port=port)
    return 0


def _cmd_config(_args: argparse.Namespace) -> int:
    cfg = ServingConfig.from_env()
    sys.stdout.write(json.dumps(cfg.model_dump(mode="json"), indent=2) + "\n")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Iterable[str] | None = None) -> int:
    """
    CLI entrypoint for the Kusto MCP server.

    Parameters
    ----------
    argv:
        Optional argument list (defaults to sys.argv).

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _make_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    _setup_logging(args.verbose)

    try:
        func: CommandHandler = args.func
        return int(func(args))
    except Exception as exc:  # noqa: BLE001
        pd = problem(
            code="cli.failure",
            title="CLI command failed",
            detail=str(exc),
            extras={"command": args.command},
        )
        log_problem(LOG, pd)
        return 1


if __name__ == "__main__":
    sys.exit(main())
