"""Invoke tasks for the storefront catalog service."""

import sys
from pathlib import Path

from invoke import task
from invoke.context import Context

LOG_FILE = Path("data/storefront.log")


@task
def start(ctx: Context, host: str = "0.0.0.0", port: int = 9000, reload: bool = False) -> None:
    """Start the storefront server in the foreground.

    Args:
        ctx: Invoke context
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 9000)
        reload: Enable auto-reload for development
    """
    cmd = f"storefront-server start --host {host} --port {port} --foreground"
    if reload:
        cmd += " --reload"

    try:
        ctx.run(cmd, pty=True)
    except KeyboardInterrupt:
        print("\nServer stopped")
        sys.exit(0)


@task
def stop(ctx: Context) -> None:
    """Stop the background storefront server."""
    ctx.run("storefront-server stop")


@task
def status(ctx: Context) -> None:
    """Check the status of the storefront server."""
    ctx.run("storefront-server status")


@task
def logs(ctx: Context, follow: bool = False, lines: int = 50) -> None:
    """View the server log.

    Args:
        ctx: Invoke context
        follow: Follow log output (like tail -f)
        lines: Number of lines to show (default: 50)
    """
    if not LOG_FILE.exists():
        print(f"No log file at {LOG_FILE}")
        return
    if follow:
        ctx.run(f"tail -f {LOG_FILE}", pty=True)
    else:
        ctx.run(f"tail -n {lines} {LOG_FILE}")


@task(name="import")
def import_csv(ctx: Context, path: str, url: str = "http://localhost:9000") -> None:
    """Import a product CSV into the running server."""
    ctx.run(f"storefront-server --url {url} import {path}")


@task(name="export")
def export_csv(ctx: Context, output: str = "products-export.csv", url: str = "http://localhost:9000") -> None:
    """Export the catalog from the running server to a CSV file."""
    ctx.run(f"storefront-server --url {url} export --output {output}")


@task
def test(ctx: Context, verbose: bool = False, coverage: bool = False) -> None:
    """Run the test suite.

    Args:
        ctx: Invoke context
        verbose: Enable verbose output
        coverage: Run with coverage report
    """
    cmd = "pytest"
    if verbose:
        cmd += " -v"
    if coverage:
        cmd += " --cov=storefront --cov-report=term-missing"
    ctx.run(cmd, pty=True)


@task
def clean(ctx: Context) -> None:
    """Clean up caches and build artifacts."""
    for pattern in ["__pycache__", "*.pyc", "*.pyo", ".pytest_cache"]:
        ctx.run(f"find . -name '{pattern}' -exec rm -rf {{}} + 2>/dev/null || true", warn=True)

    for path in ["build", "dist", "*.egg-info", ".eggs"]:
        ctx.run(f"rm -rf {path} 2>/dev/null || true", warn=True)
