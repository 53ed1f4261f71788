"""Extraction of the display name, picture URL and id from Jotform webhook payloads.

Jotform posts either a `rawRequest` JSON string or flat fields named `q<N>_<label>`
(text answers) and `q<N>_<label>[<i>]` (file answers). The configured labels are looked
up first; positional scanning is only the fallback.
"""

import json
import re
from typing import Any, Dict, Optional, Tuple

from starlette.datastructures import UploadFile
from starlette.requests import Request

from ..config import FORM_NAME_FIELD, FORM_FILE_FIELD
from ..exceptions import InvalidInput

QUESTION_KEY = re.compile(r"^q\d+_(?P<label>.+?)(?P<index>\[\d+\])?$")
ID_KEYS = ("submissionID", "submission_id", "submissionId")


async def read_fields(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            data = await request.json()
        except ValueError:
            raise InvalidInput("Invalid JSON payload")
        if not isinstance(data, dict):
            raise InvalidInput("JSON payload must be an object")
        return data

    # multipart/form-data and application/x-www-form-urlencoded
    form = await request.form()
    fields: Dict[str, Any] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            continue
        fields.setdefault(key, value)
    return fields


def is_url(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower().startswith(("http://", "https://"))


def _first(value: Any) -> Any:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str):
        value = value.strip()
    return value or None


def _raw_request(fields: Dict[str, Any]) -> Dict[str, Any]:
    raw = fields.get("rawRequest")
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            return {}
        if isinstance(decoded, dict):
            return decoded
    return {}


def _lookup(source: Dict[str, Any], label: str) -> Any:
    if label in source:
        return source[label]
    for key, value in source.items():
        match = QUESTION_KEY.match(key)
        if match and match.group("label") == label:
            return value
    return None


def extract_name(sources, label: str) -> Optional[str]:
    for source in sources:
        value = _first(_lookup(source, label))
        if isinstance(value, str) and not is_url(value):
            return value

    for source in sources:
        for key, value in source.items():
            match = QUESTION_KEY.match(key)
            if not match or match.group("index"):
                continue
            value = _first(value)
            if isinstance(value, str) and not is_url(value):
                return value
    return None


def extract_file_url(sources, label: str) -> Optional[str]:
    for source in sources:
        value = _first(_lookup(source, label))
        if is_url(value):
            return value

    for source in sources:
        for key, value in source.items():
            if not (QUESTION_KEY.match(key) or key.endswith("[0]")):
                continue
            value = _first(value)
            if is_url(value):
                return value
    return None


def extract_submission(
    fields: Dict[str, Any],
    name_field: str = FORM_NAME_FIELD,
    file_field: str = FORM_FILE_FIELD
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Return (name, file_url, submission_id) found in a webhook payload."""
    sources = [_raw_request(fields), fields]

    submission_id = None
    for source in sources:
        submission_id = next((str(source[key]) for key in ID_KEYS if source.get(key)), None)
        if submission_id:
            break

    return extract_name(sources, name_field), extract_file_url(sources, file_field), submission_id
