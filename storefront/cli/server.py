"""Storefront catalog server control script.

Usage:
    storefront-server start [--port PORT] [--reload] [--foreground]
    storefront-server stop
    storefront-server status
    storefront-server import FILE [--rates JSON]
    storefront-server export [--output FILE] [--limit N] [--offset N]
"""

import argparse
import json
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import httpx

# Configuration
DATA_DIR = Path("data")
PID_FILE = DATA_DIR / "storefront.pid"
LOG_FILE = DATA_DIR / "storefront.log"
DEFAULT_PORT = 9000
DEFAULT_HOST = "0.0.0.0"
APP_PATH = "storefront.main:app"


def get_pid() -> int | None:
    """Get the PID of the running server, if any."""
    if not PID_FILE.exists():
        return None

    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        # Stale PID file
        PID_FILE.unlink(missing_ok=True)
        return None


def start_server(
    port: int = DEFAULT_PORT,
    host: str = DEFAULT_HOST,
    reload: bool = False,
    foreground: bool = False,
) -> bool:
    """Start uvicorn serving the storefront app.

    Returns:
        True if the server started.
    """
    pid = get_pid()
    if pid:
        print(f"Server is already running (PID: {pid})")
        return False

    DATA_DIR.mkdir(parents=True, exist_ok=True)

    cmd = [sys.executable, "-m", "uvicorn", APP_PATH, "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")

    print(f"Starting storefront server on http://{host}:{port}")

    if foreground:
        try:
            subprocess.run(cmd)
        except KeyboardInterrupt:
            print("\nServer stopped")
        return True

    with open(LOG_FILE, "w") as log:
        process = subprocess.Popen(
            cmd,
            stdout=log,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )

    time.sleep(1)
    if process.poll() is not None:
        print(f"Failed to start server. See {LOG_FILE}")
        return False

    PID_FILE.write_text(str(process.pid))
    print(f"Server started with PID: {process.pid}")
    return True


def stop_server() -> bool:
    """Stop the background server started by ``start``."""
    pid = get_pid()
    if not pid:
        print("Server is not running")
        return False

    print(f"Stopping server (PID: {pid})...")
    try:
        os.kill(pid, signal.SIGTERM)
        for _ in range(10):
            time.sleep(0.5)
            try:
                os.kill(pid, 0)
            except ProcessLookupError:
                break
        else:
            print("Server didn't stop gracefully, forcing...")
            os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:
        print(f"Permission denied to stop process {pid}")
        return False

    PID_FILE.unlink(missing_ok=True)
    print("Server stopped")
    return True


def server_status(base_url: str) -> bool:
    """Print the server status from its health endpoint."""
    try:
        response = httpx.get(f"{base_url}/health", timeout=2.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        print(f"Storefront server is not reachable at {base_url} ({e})")
        return False

    data = response.json()
    print(f"Storefront server is running at {base_url}")
    print(f"  Status: {data.get('status', 'unknown')}")
    print(f"  Version: {data.get('version', 'unknown')}")
    return True


def import_file(base_url: str, path: Path, rates: dict[str, float] | None = None) -> bool:
    """Send a CSV file to the running server's import endpoint."""
    payload = {
        "csv": path.read_text(encoding="utf-8-sig"),
        "filename": path.name,
    }
    if rates:
        payload["exchangeRates"] = rates

    response = httpx.post(f"{base_url}/api/products/import", json=payload, timeout=None)
    data = response.json()

    if response.status_code != 200:
        detail = data.get("detail", data)
        if isinstance(detail, dict):
            print(f"Import rejected: {detail.get('message')}")
            for name in detail.get("missing_categories", []):
                print(f"  missing category: {name}")
            for name in detail.get("missing_brands", []):
                print(f"  missing brand: {name}")
        else:
            print(f"Import rejected: {detail}")
        return False

    print(
        f"Import {data['status']}: {data['created']} created, "
        f"{data['updated']} updated, {data['skipped']} skipped"
    )
    for error in data.get("row_errors", []):
        print(f"  row {error['row_index']} ({error['product_name']}): {error['error']}")
    for warning in data.get("warnings", []):
        print(f"  warning: {warning}")
    return not data.get("row_errors")


def export_file(base_url: str, output: Path | None, limit: int, offset: int) -> bool:
    """Download a product CSV from the running server."""
    response = httpx.get(
        f"{base_url}/api/products/export",
        params={"limit": limit, "offset": offset},
        timeout=None,
    )
    if response.status_code != 200:
        print(f"Export failed: HTTP {response.status_code}")
        return False

    if output is None:
        sys.stdout.write(response.text)
    else:
        output.write_text(response.text, encoding="utf-8")
        print(f"Exported to {output}")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront catalog server control script")
    parser.add_argument(
        "--url",
        default=f"http://localhost:{DEFAULT_PORT}",
        help="Base URL of a running server (for status/import/export)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    start_parser = subparsers.add_parser("start", help="Start the server")
    start_parser.add_argument("--port", "-p", type=int, default=DEFAULT_PORT)
    start_parser.add_argument("--host", default=DEFAULT_HOST)
    start_parser.add_argument("--reload", "-r", action="store_true")
    start_parser.add_argument("--foreground", "-f", action="store_true")

    subparsers.add_parser("stop", help="Stop the server")
    subparsers.add_parser("status", help="Check server status")

    import_parser = subparsers.add_parser("import", help="Import a product CSV")
    import_parser.add_argument("file", type=Path)
    import_parser.add_argument(
        "--rates",
        type=json.loads,
        default=None,
        help='Exchange rate override as JSON, e.g. \'{"EUR": 0.9}\'',
    )

    export_parser = subparsers.add_parser("export", help="Export products as CSV")
    export_parser.add_argument("--output", "-o", type=Path, default=None)
    export_parser.add_argument("--limit", type=int, default=1000)
    export_parser.add_argument("--offset", type=int, default=0)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    base_url = args.url.rstrip("/")
    try:
        if args.command == "start":
            ok = start_server(
                port=args.port,
                host=args.host,
                reload=args.reload,
                foreground=args.foreground,
            )
        elif args.command == "stop":
            ok = stop_server()
        elif args.command == "status":
            ok = server_status(base_url)
        elif args.command == "import":
            ok = import_file(base_url, args.file, args.rates)
        else:
            ok = export_file(base_url, args.output, args.limit, args.offset)
    except httpx.HTTPError as e:
        print(f"Request failed: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
