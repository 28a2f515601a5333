"""Tests for reading registry auths from docker-style config files."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from installkit.credentials.registry import FileRegistryAuthFetcher
from installkit.exceptions import RegistryAuthError


def _write(tmp_path: Path, data: object) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return path


class TestFileRegistryAuthFetcher:
    def test_docker_config_auths(self, tmp_path: Path) -> None:
        encoded = base64.b64encode(b"alice:pw").decode()
        path = _write(tmp_path, {"auths": {"ghcr.io": {"auth": encoded}}, "credsStore": "desktop"})
        entries = FileRegistryAuthFetcher(path).fetch()
        assert list(entries) == ["ghcr.io"]
        assert entries["ghcr.io"].username == "alice"
        assert entries["ghcr.io"].password == "pw"

    def test_bare_map(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"docker.io": {"username": "u", "password": "p"}})
        assert FileRegistryAuthFetcher(path).fetch()["docker.io"].username == "u"

    def test_helpers_only_config_is_empty(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"credsStore": "osxkeychain"})
        assert FileRegistryAuthFetcher(path).fetch() == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        fetcher = FileRegistryAuthFetcher(tmp_path / "absent.json")
        with pytest.raises(RegistryAuthError, match="Cannot read"):
            fetcher.fetch()

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{")
        with pytest.raises(RegistryAuthError, match="Invalid JSON"):
            FileRegistryAuthFetcher(path).fetch()

    @pytest.mark.parametrize("data", [[], {"auths": []}, {"ghcr.io": "token"}])
    def test_wrong_shapes(self, tmp_path: Path, data: object) -> None:
        with pytest.raises(RegistryAuthError):
            FileRegistryAuthFetcher(_write(tmp_path, data)).fetch()

    def test_bad_auth_field_hides_value(self, tmp_path: Path) -> None:
        path = _write(tmp_path, {"auths": {"ghcr.io": {"auth": "!!not-base64!!"}}})
        with pytest.raises(RegistryAuthError) as exc_info:
            FileRegistryAuthFetcher(path).fetch()
        assert "not-base64" not in str(exc_info.value)

    def test_undecodable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_bytes(b'{"auths": {"\xff\xfe": {}}}')
        with pytest.raises(RegistryAuthError, match="not valid UTF-8"):
            FileRegistryAuthFetcher(path).fetch()
