"""
=============================================================================
STATIC FILE RESPONDER
=============================================================================

The default responder: maps the request path onto a directory and answers
with the file's bytes.

    GET /                 →  <root>/index.html
    GET /css/site.css     →  <root>/css/site.css
    GET /docs/            →  <root>/docs/index.html
    GET /nope.html        →  404, "Oops!" page
    GET /../etc/passwd    →  403

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

The connection core passes the path through exactly as the client sent
it, ".." segments included. Guarding the filesystem is this module's job:

    full_path = (root / requested).resolve()   # collapses .. and symlinks
    full_path.relative_to(root)                # ValueError if it escaped

Anything that resolves outside the root is refused with 403, whether it
got there through "..", an absolute-looking segment, or a symlink.

=============================================================================
PATH BYTES
=============================================================================

The request path arrives decoded as ISO-8859-1, one character per byte.
Before touching the filesystem it is turned back into those bytes and
decoded the way the OS decodes file names, so a UTF-8 name on disk is
found from its raw UTF-8 request bytes. Percent-escapes are not decoded.

=============================================================================
"""

import logging
import os
from pathlib import Path

from ..http.mime_types import get_content_type
from ..http.request import HEADER_ENCODING, RequestData
from ..http.response import Reply
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


HTML = "text/html; charset=utf-8"

NOT_FOUND_PAGE = (
    '<!DOCTYPE html><html><head><meta charset="utf-8"><title>minihttpd</title></head>'
    "<body><h1>Oops!</h1><p>We couldn't find the file you asked for.</p></body></html>"
)

FORBIDDEN_PAGE = (
    '<!DOCTYPE html><html><head><meta charset="utf-8"><title>minihttpd</title></head>'
    "<body><h1>Forbidden</h1><p>You are not allowed to read that file.</p></body></html>"
)

ERROR_PAGE = (
    '<!DOCTYPE html><html><head><meta charset="utf-8"><title>minihttpd</title></head>'
    "<body><h1>Something broke</h1><p>The file could not be read.</p></body></html>"
)


def _page(status: HTTPStatus, html: str) -> Reply:
    return Reply(
        status_code=status,
        reason=status.phrase,
        body=html.encode("utf-8"),
        content_type=HTML,
    )


class StaticFileResponder:
    """
    Serves files below a root directory.

    Callable, so it plugs straight into ConnectionHandler:

        responder = StaticFileResponder("./public")
        reply = responder(request)

    Attributes:
        root: Absolute, resolved document root.
        index_file: File served for "/" and for directories.
    """

    def __init__(self, root: str = ".", index_file: str = "index.html"):
        self.root = Path(root).resolve()
        self.index_file = index_file

        if not self.root.is_dir():
            raise ValueError(f"Document root does not exist: {root}")

    def __call__(self, request: RequestData) -> Reply:
        return self.handle(request)

    def handle(self, request: RequestData) -> Reply:
        """
        Answer one request from the filesystem.

        Every method is answered the same way; the responder does not look
        at the body or the query.
        """
        relative = self._filesystem_path(request.path)
        if relative is None:
            return _page(HTTPStatus.NOT_FOUND, NOT_FOUND_PAGE)

        full_path = (self.root / relative).resolve()

        # ─────────────────────────────────────────────────────────────────
        # TRAVERSAL CHECK
        # ─────────────────────────────────────────────────────────────────
        try:
            full_path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Path traversal attempt from {request.client_address[0]}: {request.path}")
            return _page(HTTPStatus.FORBIDDEN, FORBIDDEN_PAGE)

        if full_path.is_dir():
            full_path = full_path / self.index_file

        if not full_path.is_file():
            return _page(HTTPStatus.NOT_FOUND, NOT_FOUND_PAGE)

        return self._serve_file(full_path)

    def _filesystem_path(self, path: str):
        """Request path as a relative OS path, or None if it cannot name a file."""
        raw = path.encode(HEADER_ENCODING)
        if b"\x00" in raw:
            return None

        relative = os.fsdecode(raw).lstrip("/")
        return relative or self.index_file

    def _serve_file(self, path: Path) -> Reply:
        try:
            content = path.read_bytes()
        except PermissionError:
            logger.warning(f"Permission denied reading {path}")
            return _page(HTTPStatus.FORBIDDEN, FORBIDDEN_PAGE)
        except OSError as e:
            logger.error(f"Error serving file {path}: {e}")
            return _page(HTTPStatus.INTERNAL_SERVER_ERROR, ERROR_PAGE)

        return Reply(
            status_code=HTTPStatus.OK,
            reason=HTTPStatus.OK.phrase,
            body=content,
            content_type=get_content_type(path),
        )
