"""Local HTTP JSON API for analysis, Q&A and documentation.

Routes:
    POST /api/analyze        {files: [...]} upload, or {repoUrl} / {path}
    POST /api/question       {question, files? | path?}
    POST /api/generate-docs  {files? | path?}
    POST /api/explain        {codeSegment, context: {filePath, language}}
    GET  /api/health

Question and documentation requests without files or a path reuse the
most recent /api/analyze result.
"""

from __future__ import annotations

import datetime
import json
import logging
from functools import partial
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any

from .analyzer import AnalysisResult, analyze_files, analyze_repo, files_from_upload
from .repo import RepoError, checkout
from .whisperer import CodebaseWhisperer

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
MAX_BODY_BYTES = 50 * 1024 * 1024


class BadRequest(Exception):
    """Client sent a request that cannot be served."""


class ServerState:
    """State shared by all requests: the whisperer and the last analysis."""

    def __init__(self, whisperer: CodebaseWhisperer, max_file_bytes: int | None = None):
        self.whisperer = whisperer
        self.max_file_bytes = max_file_bytes
        self.last_analysis: AnalysisResult | None = None

    def analyze(self, body: dict[str, Any]) -> AnalysisResult:
        """Build an analysis from an upload, a repo URL or a local path."""
        files = body.get("uploadedFiles") or body.get("files")
        repo_url = body.get("repoUrl")
        path = body.get("path")

        if files:
            if not isinstance(files, list):
                raise BadRequest("files must be a list")
            repository = {"type": "upload", "name": body.get("name") or "uploaded-project"}
            analysis = analyze_files(files_from_upload(files), repository=repository)
        elif repo_url or path:
            kwargs = {"max_file_bytes": self.max_file_bytes} if self.max_file_bytes else {}
            try:
                with checkout(str(repo_url or path)) as (local, repository):
                    analysis = analyze_repo(local, repository=repository, **kwargs)
            except RepoError as e:
                raise BadRequest(str(e))
        else:
            raise BadRequest("No repository URL or files provided")

        self.last_analysis = analysis
        return analysis

    def context_for(self, body: dict[str, Any]) -> AnalysisResult:
        if body.get("files") or body.get("uploadedFiles") or body.get("repoUrl") or body.get("path"):
            return self.analyze(body)
        if self.last_analysis is None:
            raise BadRequest("No analysis available: call /api/analyze first or include files")
        return self.last_analysis


class WhispererHandler(BaseHTTPRequestHandler):
    """HTTP handler that serves the JSON API."""

    def __init__(self, *args, state: ServerState, **kwargs):
        self._state = state
        super().__init__(*args, **kwargs)

    def do_GET(self):
        if self.path == "/api/health":
            self._send_json(200, {
                "status": "healthy",
                "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                "services": {
                    "scanner": "ready",
                    "whisperer": "model" if self._state.whisperer.uses_model else "heuristic",
                },
            })
        else:
            self._send_json(404, {"error": f"Not found: {self.path}"})

    def do_POST(self):
        routes = {
            "/api/analyze": self._analyze,
            "/api/question": self._question,
            "/api/generate-docs": self._generate_docs,
            "/api/explain": self._explain,
        }
        route = routes.get(self.path)
        if route is None:
            self._send_json(404, {"error": f"Not found: {self.path}"})
            return

        try:
            body = self._read_json()
            self._send_json(200, route(body))
        except BadRequest as e:
            self._send_json(400, {"error": str(e)})
        except Exception as e:
            logger.exception("Request to %s failed", self.path)
            self._send_json(500, {"error": str(e)})

    def do_OPTIONS(self):
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def _analyze(self, body: dict[str, Any]) -> dict[str, Any]:
        return self._state.analyze(body).to_dict()

    def _question(self, body: dict[str, Any]) -> dict[str, Any]:
        question = body.get("question")
        if not question or not isinstance(question, str):
            raise BadRequest("Question is required")
        analysis = self._state.context_for(body)
        return self._state.whisperer.answer_question(question, analysis).to_dict()

    def _generate_docs(self, body: dict[str, Any]) -> dict[str, Any]:
        analysis = self._state.context_for(body)
        return self._state.whisperer.generate_documentation(analysis).to_dict()

    def _explain(self, body: dict[str, Any]) -> dict[str, Any]:
        code = body.get("codeSegment")
        if not code or not isinstance(code, str):
            raise BadRequest("Code segment is required")
        context = body.get("context") or {}
        if not isinstance(context, dict):
            raise BadRequest("context must be an object")
        return self._state.whisperer.explain_code(
            code,
            file_path=str(context.get("filePath") or ""),
            language=str(context.get("language") or ""),
        ).to_dict()

    def _read_json(self) -> dict[str, Any]:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            raise BadRequest("Invalid Content-Length")
        if length > MAX_BODY_BYTES:
            raise BadRequest("Request body too large")
        raw = self.rfile.read(length) if length else b""
        if not raw:
            return {}
        try:
            body = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise BadRequest("Request body must be valid JSON")
        if not isinstance(body, dict):
            raise BadRequest("Request body must be a JSON object")
        return body

    def _send_json(self, status: int, data: dict[str, Any]) -> None:
        content = json.dumps(data).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(content)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(content)

    def log_message(self, format, *args):
        """Route access logs through the package logger."""
        logger.debug("%s - %s", self.address_string(), format % args)


def make_server(
    whisperer: CodebaseWhisperer,
    host: str = DEFAULT_HOST,
    port: int = 3000,
    max_file_bytes: int | None = None,
) -> HTTPServer:
    handler = partial(WhispererHandler, state=ServerState(whisperer, max_file_bytes))
    HTTPServer.allow_reuse_address = True
    return HTTPServer((host, port), handler)


def start_server(
    whisperer: CodebaseWhisperer,
    host: str = DEFAULT_HOST,
    port: int = 3000,
    max_file_bytes: int | None = None,
) -> None:
    """Start the API server and block until interrupted.

    Args:
        whisperer: Answers questions and writes documentation
        host: Interface to bind
        port: Port to serve on
        max_file_bytes: Per-file size limit for directory scans
    """
    server = make_server(whisperer, host=host, port=port, max_file_bytes=max_file_bytes)
    logger.info("Codebase Whisperer API on http://%s:%d/api/", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
