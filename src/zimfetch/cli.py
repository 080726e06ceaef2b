from __future__ import annotations

import asyncio
import importlib
import json
import logging
from typing import Any, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from zimfetch.client import Client
from zimfetch.config import load_client_config, parse_header
from zimfetch.domain.models import EndpointResponse, RequestSpec
from zimfetch.router.tree import classify, walk_endpoints
from zimfetch.schema.validator import PydanticSchema


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log dispatch and decoration details"),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _parse_params(pairs: List[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        out[key] = value
    return out


def _parse_body(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        # not JSON: send as plain text
        return raw


def _print_response(result: EndpointResponse, fmt: str) -> None:
    if fmt == "json":
        payload: dict[str, Any] = {"status": result.status}
        if result.error is None:
            payload["data"] = result.data
        else:
            payload["error"] = result.error.model_dump(mode="json", exclude={"cause"})
            payload["error"]["cause"] = result.error.cause
        console.print(json.dumps(payload, indent=2, default=str), markup=False, highlight=False, soft_wrap=True)
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("FIELD", no_wrap=True)
    table.add_column("VALUE")
    table.add_row("status", str(result.status))
    if result.error is None:
        data = result.data
        table.add_row("data", data if isinstance(data, str) else json.dumps(data, indent=2, default=str))
    else:
        table.add_row("error", f"[bold red]{result.error.kind.value}[/bold red]: {result.error.message}")
        for issue in result.error.issues or []:
            table.add_row("issue", f"{'.'.join(str(p) for p in issue.path) or '<root>'}: {issue.message}")
        if result.error.cause is not None:
            table.add_row("cause", str(result.error.cause))
    console.print(table)


@app.command()
def call(
    path: str = typer.Argument(..., help="Request path, joined to the base URL"),
    base_url: Optional[str] = typer.Option(None, "--base-url", "-u", help="Base URL (default: $ZIMFETCH_BASE_URL)"),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method"),
    header: List[str] = typer.Option([], "--header", "-H", help="Header 'Name: value' (repeatable)"),
    param: List[str] = typer.Option([], "--param", "-p", help="Query param key=value (repeatable)"),
    body: Optional[str] = typer.Option(None, help="Request body (JSON or text)"),
    timeout: Optional[float] = typer.Option(None, help="Timeout in milliseconds"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")

    try:
        config = load_client_config()
        headers = dict(parse_header(h) for h in header)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if base_url is not None:
        config = config.with_overrides(base_url=base_url)

    try:
        spec = RequestSpec(
            path=path,
            method=method,
            body=_parse_body(body),
            params=_parse_params(param),
            headers=headers,
            timeout_ms=timeout,
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    client = Client.from_config(config)
    result = asyncio.run(client.execute(spec))
    _print_response(result, fmt)
    if result.error is not None:
        raise typer.Exit(code=1)


def _load_router(target: str) -> Any:
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"Expected MODULE:ATTR, got {target!r}")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"Cannot import {module_name!r}: {exc}") from exc
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}") from exc
    if classify(obj) != "router":
        raise typer.BadParameter(f"{target} is not a router tree (got {type(obj).__name__})")
    return obj


def _validator_name(v: Any) -> str:
    if v is None:
        return "-"
    return repr(v) if isinstance(v, PydanticSchema) else type(v).__name__


@app.command()
def routes(
    target: str = typer.Argument(..., help="Router tree to inspect, as MODULE:ATTR"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    tree = _load_router(target)
    rows = [
        {
            "trace": ".".join(trace),
            "method": ep.method,
            "path": ep.path,
            "input": _validator_name(ep.input_validator),
            "output": _validator_name(ep.output_validator),
        }
        for trace, ep in walk_endpoints(tree)
    ]

    if format.lower() == "json":
        console.print(json.dumps(rows, indent=2), markup=False, highlight=False, soft_wrap=True)
        return

    console.print(f"[bold]Endpoints:[/bold] {len(rows)}")
    table = Table(show_header=True, header_style="bold")
    table.add_column("TRACE")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("PATH")
    table.add_column("INPUT")
    table.add_column("OUTPUT")
    for r in rows:
        table.add_row(r["trace"], r["method"], r["path"], r["input"], r["output"])
    console.print(table)


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
