# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""kgateway CLI - run the kernel gateway and drive it over HTTP"""

import json
import sys

import click
import httpx
import yaml

from kgateway import __version__
from kgateway.core.exceptions import GatewayError

DEFAULT_URL = "http://127.0.0.1:1111"


def _client(url: str) -> httpx.Client:
    return httpx.Client(base_url=url, timeout=30.0)


def _emit(data, output: str):
    if output == "yaml":
        click.echo(yaml.safe_dump(data, sort_keys=False).rstrip())
    else:
        click.echo(json.dumps(data, indent=2))


def _call(ctx: click.Context, method: str, path: str, **kwargs):
    """Send one request to the gateway and unwrap the response envelope"""
    url = ctx.obj["url"]
    try:
        with _client(url) as client:
            response = client.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        click.echo(f"[-] Cannot reach gateway at {url}: {e}", err=True)
        ctx.exit(2)

    try:
        body = response.json()
    except ValueError:
        click.echo(f"[-] Unexpected response ({response.status_code}): {response.text}", err=True)
        ctx.exit(1)

    if not body.get("success"):
        click.echo(f"[-] Error: {body.get('error')}", err=True)
        ctx.exit(1)

    return body.get("data")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--url",
    envvar="KERNEL_GATEWAY_URL",
    default=DEFAULT_URL,
    show_default=True,
    help="Gateway base URL",
)
@click.option(
    "--output", "-o",
    type=click.Choice(["json", "yaml"]),
    default="json",
    help="Output format",
)
@click.pass_context
def cli(ctx: click.Context, url: str, output: str):
    """kgateway - Kernel Gateway.

    Launches and tears down compute-kernel workers, one per report id.

    Examples:
        kgateway serve --port 1111
        kgateway kernels launch report-42
        kgateway kernels list -o yaml
    """
    ctx.ensure_object(dict)
    ctx.obj["url"] = url.rstrip("/")
    ctx.obj["output"] = output


# =============================================================================
# Server
# =============================================================================

@cli.command()
@click.option("--host", help="Bind host (default: KERNEL_GATEWAY_HOST or ::)")
@click.option("--port", type=int, help="Listen port (default: KERNEL_GATEWAY_PORT or 1111)")
def serve(host, port):
    """Run the gateway HTTP server."""
    from kgateway.server.__main__ import main

    try:
        main(host=host, port=port)
    except GatewayError as e:
        click.echo(f"[-] Error: {e.message}", err=True)
        sys.exit(1)


@cli.command("config")
@click.pass_context
def show_config(ctx: click.Context):
    """Print the effective configuration."""
    from kgateway.core.config import load_config

    try:
        config = load_config()
    except GatewayError as e:
        click.echo(f"[-] Error: {e}", err=True)
        ctx.exit(1)
    _emit(config.model_dump(mode="json"), ctx.obj["output"])


@cli.command()
@click.pass_context
def sysinfo(ctx: click.Context):
    """Show host memory of the gateway machine."""
    _emit(_call(ctx, "GET", "/sysinfo"), ctx.obj["output"])


# =============================================================================
# Kernels
# =============================================================================

@cli.group()
def kernels():
    """Manage kernels on a running gateway."""


@kernels.command("list")
@click.pass_context
def list_kernels(ctx: click.Context):
    """List live kernels."""
    _emit(_call(ctx, "GET", "/kernels"), ctx.obj["output"])


@kernels.command("get")
@click.argument("report_id")
@click.pass_context
def get_kernel(ctx: click.Context, report_id: str):
    """Show the kernel for REPORT_ID."""
    _emit(_call(ctx, "GET", f"/kernels/{report_id}"), ctx.obj["output"])


@kernels.command("launch")
@click.argument("report_id")
@click.pass_context
def launch_kernel(ctx: click.Context, report_id: str):
    """Launch a kernel for REPORT_ID."""
    kernel = _call(ctx, "POST", "/kernels", json={"report_id": report_id})
    _emit(kernel, ctx.obj["output"])


@kernels.command("kill")
@click.argument("report_id")
@click.pass_context
def kill_kernel(ctx: click.Context, report_id: str):
    """Kill the kernel for REPORT_ID."""
    _call(ctx, "DELETE", f"/kernels/{report_id}")
    click.echo(f"[+] Killed kernel for {report_id}")


@kernels.command("restart")
@click.argument("report_id")
@click.pass_context
def restart_kernel(ctx: click.Context, report_id: str):
    """Restart the kernel for REPORT_ID."""
    _emit(_call(ctx, "POST", f"/kernels/{report_id}/restart"), ctx.obj["output"])


if __name__ == "__main__":
    cli()
