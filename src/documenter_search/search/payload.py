"""Decoding of generated search-index payloads.

The documentation generator writes its index either as plain JSON or wrapped
in a JavaScript assignment::

    var documenterSearchIndex = {"docs": [
    {"location": "#", "page": "Readme", "title": "Readme", "category": "page", "text": ""},
    ...
    ]}

The JavaScript form is a literal rather than strict JSON: it may carry a
trailing comma after the last record and ``\\'`` escapes inside strings. Both
forms decode to the same ordered list of record mappings.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from pathlib import Path
import re
from typing import Any

from pydantic import ValidationError
import orjson

from documenter_search.domain.records import Record
from documenter_search.search.errors import MalformedRecord, PayloadError


logger = logging.getLogger(__name__)

_JS_ASSIGNMENT_PATTERN = re.compile(r"^\s*(?:var|let|const)\s+[A-Za-z_$][\w$]*\s*=\s*", re.ASCII)
_DOCS_KEY = "docs"


def normalize_js_literal(body: str) -> str:
    """Rewrite a JavaScript object literal into strict JSON.

    Drops commas that directly precede ``]`` or ``}`` and turns ``\\'`` escapes
    inside strings into plain apostrophes. String contents are otherwise kept
    verbatim.
    """

    out: list[str] = []
    in_string = False
    i = 0
    length = len(body)
    while i < length:
        char = body[i]
        if in_string:
            if char == "\\" and i + 1 < length:
                nxt = body[i + 1]
                out.append("'" if nxt == "'" else char + nxt)
                i += 2
                continue
            if char == '"':
                in_string = False
            out.append(char)
        elif char == '"':
            in_string = True
            out.append(char)
        elif char == ",":
            j = i + 1
            while j < length and body[j].isspace():
                j += 1
            if j >= length or body[j] not in "]}":
                out.append(char)
        else:
            out.append(char)
        i += 1
    return "".join(out)


def parse_search_index_payload(payload: str | bytes) -> list[dict[str, Any]]:
    """Return the raw record mappings contained in a payload.

    Accepts ``{"docs": [...]}``, a bare JSON list, or either of those behind a
    ``var name =`` assignment with an optional trailing semicolon.
    """

    text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    body = _JS_ASSIGNMENT_PATTERN.sub("", text, count=1).strip()
    if body.endswith(";"):
        body = body[:-1].rstrip()
    if not body:
        msg = "Search index payload is empty"
        raise PayloadError(msg)

    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError:
        # Generators emit JavaScript literals: trailing commas and \' escapes.
        try:
            data = orjson.loads(normalize_js_literal(body))
        except orjson.JSONDecodeError as exc:
            msg = f"Search index payload is not valid JSON: {exc}"
            raise PayloadError(msg) from exc

    if isinstance(data, Mapping):
        if _DOCS_KEY not in data:
            msg = f"Search index payload has no '{_DOCS_KEY}' key"
            raise PayloadError(msg)
        data = data[_DOCS_KEY]

    if not isinstance(data, list):
        msg = f"Search index payload must hold a list of records, got {type(data).__name__}"
        raise PayloadError(msg)

    return data


def coerce_record(raw: Record | Mapping[str, Any], index: int) -> Record:
    """Validate a single raw mapping, reporting failures by record index."""

    if isinstance(raw, Record):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedRecord(index, f"expected a mapping, got {type(raw).__name__}")
    try:
        return Record.model_validate(dict(raw))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}" for error in exc.errors()
        )
        raise MalformedRecord(index, problems) from exc


def load_records(raw_records: Sequence[Record | Mapping[str, Any]]) -> list[Record]:
    """Convert raw mappings into validated records, failing on the first bad one."""

    return [coerce_record(raw, index) for index, raw in enumerate(raw_records)]


def load_search_index(path: Path) -> list[Record]:
    """Read a payload file and return validated records."""

    records = load_records(parse_search_index_payload(path.read_bytes()))
    logger.info("Loaded %d search-index records from %s", len(records), path)
    return records
