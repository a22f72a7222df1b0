"""Document well-formedness check."""

import json
import logging
from typing import Any

from ..errors import DocumentMalformedError
from ..models.finding import Authority, Finding, Severity
from .node import DocumentNode, json_type_name

logger = logging.getLogger(__name__)


def _fatal(code: str, details: dict[str, Any]) -> Finding:
    return Finding(
        authority=Authority.STRUCTURE,
        code=code,
        pointer="",
        severity=Severity.ERROR,
        details=details,
    )


def parse_document(source: str | bytes | dict | DocumentNode) -> DocumentNode:
    """Parse input into a root :class:`DocumentNode`.

    Args:
        source: JSON text, UTF-8 bytes, an already-parsed object, or a node

    Returns:
        Root node of the document

    Raises:
        DocumentMalformedError: If the document is empty, is not valid JSON
            or its root is not an object. The error carries the fatal findings.
    """
    if isinstance(source, DocumentNode):
        source = source.value

    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            finding = _fatal("INVALID_JSON", {
                "reason": f"Document is not valid UTF-8: {e.reason}",
                "lineNumber": None,
                "column": None,
            })
            raise DocumentMalformedError("Document is not valid UTF-8", [finding])

    if isinstance(source, str):
        if not source.strip():
            finding = _fatal("EMPTY_DOCUMENT", {"reason": "Document is empty"})
            raise DocumentMalformedError("Document is empty", [finding])
        try:
            value = json.loads(source)
        except json.JSONDecodeError as e:
            logger.debug(f"Document failed to parse: {e}")
            finding = _fatal("INVALID_JSON", {
                "reason": e.msg,
                "lineNumber": e.lineno,
                "column": e.colno,
            })
            raise DocumentMalformedError(f"Invalid JSON: {e}", [finding])
    else:
        value = source

    if not isinstance(value, dict):
        finding = _fatal("ROOT_NOT_OBJECT", {"actualType": json_type_name(value)})
        raise DocumentMalformedError("Document root must be an object", [finding])

    return DocumentNode(value)
