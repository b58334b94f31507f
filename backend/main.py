"""
Command line and minimal HTTP entry points for the site anomaly engine.

    python -m backend.main report project.json [--now 2026-01-31] [--indent 2]
    python -m backend.main serve [--host 0.0.0.0] [--port 8000]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List, Optional

from dotenv import load_dotenv

from src.anomaly import AnomalyEngine, AnomalyReport
from src.core.exceptions import DataValidationError
from src.core.logging_config import setup_logging
from src.project import load_snapshot_file, load_snapshot_json
from src.project.normalizers import NormalizationError, normalize_date

logger = logging.getLogger("sitewatch.backend")


def report_to_json(report: AnomalyReport, indent: Optional[int] = None) -> str:
    return report.model_dump_json(by_alias=True, indent=indent)


class BackendHandler(BaseHTTPRequestHandler):
    server_version = "SitewatchBackend/1.0"
    engine: AnomalyEngine = None

    def _send_json(self, status: int, payload: object) -> None:
        if isinstance(payload, str):
            body = payload.encode("utf-8")
        else:
            body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:
        if self.path == "/health":
            self._send_json(200, {"status": "ok"})
            return

        self._send_json(404, {"detail": "Not found"})

    def do_OPTIONS(self) -> None:
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.end_headers()

    def do_POST(self) -> None:
        if self.path == "/anomalies/report":
            self._handle_report()
            return

        self._send_json(404, {"detail": "Not found"})

    def _handle_report(self) -> None:
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            self._send_json(400, {"detail": "Invalid Content-Length"})
            return
        if length <= 0:
            self._send_json(400, {"detail": "Empty request"})
            return

        body = self.rfile.read(length)
        try:
            snapshot = load_snapshot_json(body)
        except DataValidationError as exc:
            self._send_json(400, {"detail": str(exc)})
            return

        report = self.engine.build_report(snapshot)
        self._send_json(200, report_to_json(report))

    def log_message(self, format: str, *args: object) -> None:
        logger.info("%s - %s", self.address_string(), format % args)


def run(host: str, port: int, engine: Optional[AnomalyEngine] = None) -> None:
    BackendHandler.engine = engine or AnomalyEngine()
    logger.info("Starting backend server on %s:%s", host, port)
    server = ThreadingHTTPServer((host, port), BackendHandler)
    server.serve_forever()


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return normalize_date(value)
    except NormalizationError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Construction project anomaly engine")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="Build an anomaly report from a snapshot file")
    report.add_argument("snapshot", help="Path to a project snapshot JSON file")
    report.add_argument("--now", type=_parse_now, default=None, help="Evaluate as of this date")
    report.add_argument("--indent", type=int, default=2)

    serve = sub.add_parser("serve", help="Serve reports over HTTP")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    setup_logging()

    args = build_parser().parse_args(argv)

    if args.command == "serve":
        run(args.host, args.port)
        return 0

    try:
        snapshot = load_snapshot_file(args.snapshot)
    except DataValidationError as exc:
        logger.error("%s", exc)
        return 2

    report = AnomalyEngine().build_report(snapshot, now=args.now)
    sys.stdout.write(report_to_json(report, indent=args.indent) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
