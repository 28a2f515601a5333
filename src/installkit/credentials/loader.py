"""Load serialised credential-set files from a local path or a URL.

Credential-set documents may be JSON or YAML; the format is detected from
the file extension or response content type, falling back to trying JSON
then YAML. The result is validated into a
:class:`~installkit.models.CredentialSetFile`.

A source that does not exist raises
:class:`~installkit.exceptions.NotFoundError`; a document that exists but
is not a valid credential set raises
:class:`~installkit.exceptions.CredentialSourceError` with kind
``INVALID_CREDENTIAL_SET``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import ValidationError

from installkit.config import describe_yaml_error
from installkit.exceptions import (
    CredentialSourceError,
    CredentialSourceErrorKind,
    NotFoundError,
)
from installkit.models import CredentialSetFile


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_credential_set_file(source: str) -> CredentialSetFile:
    """Load a credential set from a URL (http/https) or a file path.

    Raises:
        NotFoundError: If the file does not exist or the URL cannot be fetched.
        CredentialSourceError: If the content is not a valid credential set.
    """
    if is_url(source):
        content, hint = _fetch_url(source)
    else:
        content, hint = _read_file(source)
    data = _parse_content(content, source, hint)
    try:
        return CredentialSetFile.model_validate(data)
    except ValidationError as exc:
        raise CredentialSourceError(
            CredentialSourceErrorKind.INVALID_CREDENTIAL_SET,
            f"Invalid credential set {source}: {exc.error_count()} validation error(s)",
            name=source,
        ) from exc


def _fetch_url(url: str) -> tuple[str, str]:
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise NotFoundError(
            f"HTTP {exc.response.status_code} fetching credential set from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise NotFoundError(f"Failed to fetch credential set from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return response.text, hint


def _read_file(source: str) -> tuple[str, str]:
    try:
        path = Path(source).expanduser()
    except RuntimeError as exc:
        raise NotFoundError(f"Credential set file not found: {source}") from exc
    if not path.is_file():
        raise NotFoundError(f"Credential set file not found: {source}")
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise NotFoundError(f"Cannot read credential set file {source}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise _invalid(source, "not valid UTF-8") from exc

    suffix = path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"
    return content, hint


def _parse_content(content: str, source: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON or YAML, trying JSON first unless hinted as YAML."""
    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise _invalid(source, f"invalid JSON: {exc}") from exc
        else:
            if not isinstance(result, dict):
                raise _invalid(source, f"expected an object, got {type(result).__name__}")
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise _invalid(
            source, f"cannot parse as JSON or YAML: {describe_yaml_error(exc)}"
        ) from exc
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise _invalid(source, f"expected an object, got {kind}")
    return result


def _invalid(source: str, reason: str) -> CredentialSourceError:
    return CredentialSourceError(
        CredentialSourceErrorKind.INVALID_CREDENTIAL_SET,
        f"Invalid credential set {source}: {reason}",
        name=source,
    )
