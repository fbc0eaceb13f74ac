"""Application entry point for AssessQt."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

import httpx
from PySide6.QtWidgets import QApplication

from assessment_app.constants.assessment_constants import DEFAULT_DATA_DIR
from assessment_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT, REQUEST_TIMEOUT_SECONDS
from assessment_app.core.assessment_importer import load_assessments_from_directory
from assessment_app.core.assessment_manager import AssessmentManager
from assessment_app.core.gateway import AssessmentGateway, LocalAssessmentGateway
from assessment_app.core.models import AssessmentKind
from assessment_app.core.services.http_gateway import HttpAssessmentGateway
from assessment_app.core.student_flow import StudentAssessmentFlow
from assessment_app.server.api_server import serve_forever, start_api_server
from assessment_app.ui.student_window import StudentMainWindow
from assessment_app.utils.logging_config import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="assessqt", description="Timed quizzes and evaluations.")
    parser.add_argument("--kind", choices=[kind.value for kind in AssessmentKind], default=AssessmentKind.QUIZ.value)
    parser.add_argument("--assessment-id", help="Assessment to open in the student window.")
    parser.add_argument("--student-id", help="Identity of the student taking the assessment.")
    parser.add_argument(
        "--server-url",
        help="Use a remote API server instead of the built-in one (e.g. http://10.0.0.5:8000).",
    )
    parser.add_argument("--data-dir", type=Path, default=Path(DEFAULT_DATA_DIR))
    parser.add_argument("--serve-only", action="store_true", help="Run the API server without a window.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--font-size", type=int, default=14)
    parser.add_argument("--debug", action="store_true")
    return parser


def _seed_managers(data_dir: Path, logger: logging.Logger) -> dict[AssessmentKind, AssessmentManager]:
    managers = {kind: AssessmentManager(kind=kind) for kind in AssessmentKind}
    imported = load_assessments_from_directory(data_dir) if data_dir.is_dir() else []
    for kind, manager in managers.items():
        definitions = [item.definition for item in imported if item.definition.kind is kind]
        manager.load_definitions(definitions)
        logger.info("Loaded %d %s definition(s) from %s", len(definitions), kind.value, data_dir)
    return managers


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, serve the API and launch the student window."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logger = configure_logging(logging.DEBUG if args.debug else logging.INFO)
    logger.info("Starting AssessQt…")

    kind = AssessmentKind(args.kind)
    gateway: AssessmentGateway
    if args.server_url:
        if args.serve_only:
            parser.error("--serve-only cannot be combined with --server-url")
        client = httpx.Client(base_url=args.server_url, timeout=REQUEST_TIMEOUT_SECONDS)
        gateway = HttpAssessmentGateway(client, kind)
    else:
        managers = _seed_managers(args.data_dir, logger)
        if args.serve_only:
            serve_forever(managers, host=args.host, port=args.port)
            return
        start_api_server(managers, host=args.host, port=args.port)
        gateway = LocalAssessmentGateway(managers[kind])

    if not args.assessment_id or not args.student_id:
        parser.error("--assessment-id and --student-id are required to open the student window")

    app = QApplication(sys.argv)
    flow = StudentAssessmentFlow(gateway, args.assessment_id, args.student_id)
    window = StudentMainWindow(flow, font_size=args.font_size)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
