"""Tests for credential composition: precedence, collisions, failures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from installkit.contexts.store import ProfileStore
from installkit.credentials.composer import compose
from installkit.credentials.registry import FileRegistryAuthFetcher, RegistryAuthFetcher
from installkit.credentials.sources import (
    AMBIENT_CONTEXT_KEY,
    REGISTRY_CREDS_KEY,
    AmbientEndpointSource,
    ExplicitSource,
    NamedSetSource,
    RegistryAuthSource,
)
from installkit.credentials.store import CredentialStore
from installkit.exceptions import (
    CompositionError,
    CredentialSourceError,
    CredentialSourceErrorKind,
    InvalidUsageError,
    RegistryAuthError,
)
from installkit.models import (
    AuthEntry,
    ConnectionProfile,
    CredentialSetFile,
    CredentialStrategy,
    ValueSource,
    WarningKind,
)


class StaticFetcher(RegistryAuthFetcher):
    def __init__(self, entries: dict[str, AuthEntry]) -> None:
        self.entries = entries

    def fetch(self) -> dict[str, AuthEntry]:
        return dict(self.entries)


class FailingFetcher(RegistryAuthFetcher):
    def fetch(self) -> dict[str, AuthEntry]:
        raise RegistryAuthError("registry config unreadable")


@pytest.fixture
def named(credential_store: CredentialStore) -> NamedSetSource:
    credential_store.save(
        CredentialSetFile(
            name="db",
            credentials=[
                CredentialStrategy(name="user", source=ValueSource(value="from-set")),
                CredentialStrategy(name="region", source=ValueSource(value="eu")),
            ],
        )
    )
    return NamedSetSource(("db",), credential_store)


class TestCompose:
    def test_no_sources(self) -> None:
        creds, warnings = compose([])
        assert len(creds) == 0
        assert warnings == []

    def test_disjoint_union(self, named: NamedSetSource) -> None:
        creds, warnings = compose([named, ExplicitSource(("token=abc",))])
        assert creds.credentials == {"user": "from-set", "region": "eu", "token": "abc"}
        assert warnings == []

    def test_explicit_beats_named_set(self, named: NamedSetSource) -> None:
        creds, warnings = compose([named, ExplicitSource(("user=alice",))])
        assert creds["user"] == "alice"
        assert len(warnings) == 1
        warning = warnings[0]
        assert warning.kind == WarningKind.COLLISION
        assert warning.key == "user"
        assert warning.previous_source == "named_set"
        assert warning.new_source == "explicit"

    def test_order_of_input_is_irrelevant(self, named: NamedSetSource) -> None:
        explicit = ExplicitSource(("user=alice",))
        forward = compose([named, explicit])
        backward = compose([explicit, named])
        assert forward[0] == backward[0]
        assert forward[1] == backward[1]

    def test_ambient_overrides_explicit_reserved_key(
        self, profile_store: ProfileStore, tls_profile: ConnectionProfile
    ) -> None:
        profile_store.put(tls_profile)
        creds, warnings = compose(
            [
                AmbientEndpointSource("prod", profile_store),
                ExplicitSource((f"{AMBIENT_CONTEXT_KEY}=manual",)),
            ]
        )
        assert creds[AMBIENT_CONTEXT_KEY]["name"] == "prod"
        assert [w.key for w in warnings] == [AMBIENT_CONTEXT_KEY]

    def test_registry_auth_hosts(self) -> None:
        entries = {"ghcr.io": AuthEntry(username="u", password="p")}
        creds, warnings = compose([RegistryAuthSource(True, StaticFetcher(entries))])
        assert creds.registry_auth == entries
        assert warnings == []

    def test_values_never_logged(
        self, named: NamedSetSource, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="installkit"):
            compose([named, ExplicitSource(("user=hunter2",))])
        assert "'user'" in caplog.text
        assert "hunter2" not in caplog.text
        assert "from-set" not in caplog.text


class TestComposeFailures:
    def test_malformed_override_aborts(self) -> None:
        with pytest.raises(CompositionError) as exc_info:
            compose([ExplicitSource(("user=alice", "bad-entry"))])
        source_error = exc_info.value.source_error
        assert source_error.kind == CredentialSourceErrorKind.MALFORMED_OVERRIDE
        assert source_error.raw == "bad-entry"
        assert exc_info.value.__cause__ is source_error

    def test_unknown_named_set_aborts(self, credential_store: CredentialStore) -> None:
        with pytest.raises(CompositionError) as exc_info:
            compose([NamedSetSource(("ghost",), credential_store)])
        assert exc_info.value.source_error.kind == CredentialSourceErrorKind.UNKNOWN_CREDENTIAL_SET
        assert exc_info.value.source == "named_set"

    def test_first_required_failure_wins(self, credential_store: CredentialStore) -> None:
        with pytest.raises(CompositionError) as exc_info:
            compose(
                [
                    ExplicitSource(("bad-entry",)),
                    NamedSetSource(("ghost",), credential_store),
                ]
            )
        assert exc_info.value.source == "named_set"

    def test_optional_registry_failure_is_warning(self, named: NamedSetSource) -> None:
        creds, warnings = compose([named, RegistryAuthSource(True, FailingFetcher())])
        assert creds.keys() == ["user", "region"]
        assert len(warnings) == 1
        assert warnings[0].kind == WarningKind.SOURCE_FAILURE
        assert warnings[0].new_source == "registry_auth"
        assert "registry config unreadable" in warnings[0].message

    def test_optional_ambient_failure_is_warning(self, profile_store: ProfileStore) -> None:
        creds, warnings = compose([AmbientEndpointSource("ghost", profile_store)])
        assert len(creds) == 0
        assert warnings[0].kind == WarningKind.SOURCE_FAILURE
        assert warnings[0].new_source == "ambient_endpoint"

    def test_sources_are_not_mutated(self, named: NamedSetSource) -> None:
        explicit = ExplicitSource(("user=alice",))
        compose([named, explicit])
        assert explicit.pairs == ("user=alice",)
        assert named.names == ("db",)

    def test_undecodable_registry_file_is_warning(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_bytes(b'{"auths": {"\xff\xfe": {}}}')
        creds, warnings = compose(
            [ExplicitSource(("a=b",)), RegistryAuthSource(True, FileRegistryAuthFetcher(path))]
        )
        assert creds.credentials == {"a": "b"}
        assert [w.kind for w in warnings] == [WarningKind.SOURCE_FAILURE]
        assert "not valid UTF-8" in warnings[0].message

    def test_unexpected_optional_error_is_warning(self) -> None:
        class BrokenFetcher(RegistryAuthFetcher):
            def fetch(self) -> dict[str, AuthEntry]:
                raise ValueError("unexpected shape")

        creds, warnings = compose(
            [ExplicitSource(("a=b",)), RegistryAuthSource(True, BrokenFetcher())]
        )
        assert creds.credentials == {"a": "b"}
        assert warnings[0].kind == WarningKind.SOURCE_FAILURE
        assert "unexpected shape" in warnings[0].message

    def test_undecodable_credential_file_aborts(self, tmp_path: Path) -> None:
        path = tmp_path / "creds.yaml"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(CompositionError) as exc_info:
            compose([NamedSetSource((str(path),), None)])
        source_error = exc_info.value.source_error
        assert isinstance(source_error, CredentialSourceError)
        assert source_error.kind == CredentialSourceErrorKind.INVALID_CREDENTIAL_SET

    def test_undecodable_value_file_aborts(
        self, credential_store: CredentialStore, tmp_path: Path
    ) -> None:
        binary = tmp_path / "key.bin"
        binary.write_bytes(b"\x80\x81\x82")
        credential_store.save(
            CredentialSetFile(
                name="bin",
                credentials=[
                    CredentialStrategy(name="key", source=ValueSource(path=str(binary)))
                ],
            )
        )
        with pytest.raises(CompositionError) as exc_info:
            compose([NamedSetSource(("bin",), credential_store)])
        assert exc_info.value.source_error.kind == CredentialSourceErrorKind.UNRESOLVED_VALUE

    def test_store_usage_error_is_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def reject(source: NamedSetSource) -> None:
            raise InvalidUsageError("Invalid credential set name")

        monkeypatch.setattr("installkit.credentials.composer.produce", reject)
        with pytest.raises(CompositionError) as exc_info:
            compose([NamedSetSource(("x",), None)])
        assert isinstance(exc_info.value.source_error, InvalidUsageError)


@pytest.fixture
def build_source(
    credential_store: CredentialStore,
    profile_store: ProfileStore,
    tls_profile: ConnectionProfile,
):
    """Build a source of the given kind that writes *key*."""
    profile_store.put(tls_profile)
    registry = {"ghcr.io": AuthEntry(username="u", password="p")}

    def build(kind: str, key: str):
        if kind == "named_set":
            credential_store.save(
                CredentialSetFile(
                    name="shared",
                    credentials=[
                        CredentialStrategy(name=key, source=ValueSource(value="from-set"))
                    ],
                )
            )
            return NamedSetSource(("shared",), credential_store)
        if kind == "explicit":
            return ExplicitSource((f"{key}=from-explicit",))
        if kind == "ambient_endpoint":
            return AmbientEndpointSource("prod", profile_store)
        return RegistryAuthSource(True, StaticFetcher(registry))

    return build


class TestCollisions:
    # ambient_endpoint and registry_auth write different reserved keys, so
    # they never collide with each other.
    @pytest.mark.parametrize(
        "earlier, later, key",
        [
            ("named_set", "explicit", "user"),
            ("named_set", "ambient_endpoint", AMBIENT_CONTEXT_KEY),
            ("explicit", "ambient_endpoint", AMBIENT_CONTEXT_KEY),
            ("named_set", "registry_auth", REGISTRY_CREDS_KEY),
            ("explicit", "registry_auth", REGISTRY_CREDS_KEY),
        ],
    )
    def test_later_source_wins(self, build_source, earlier: str, later: str, key: str) -> None:
        low, high = build_source(earlier, key), build_source(later, key)
        creds, warnings = compose([high, low])
        alone, _ = compose([high])
        assert creds[key] == alone[key]
        assert [(w.key, w.previous_source, w.new_source) for w in warnings] == [
            (key, earlier, later)
        ]
        assert warnings[0].kind == WarningKind.COLLISION

    def test_one_warning_per_key(self, credential_store: CredentialStore) -> None:
        credential_store.save(
            CredentialSetFile(
                name="many",
                credentials=[
                    CredentialStrategy(name=k, source=ValueSource(value="old"))
                    for k in ("a", "b", "c")
                ],
            )
        )
        creds, warnings = compose(
            [
                NamedSetSource(("many",), credential_store),
                ExplicitSource(("a=1", "b=2", "c=3", "d=4")),
            ]
        )
        assert creds.credentials == {"a": "1", "b": "2", "c": "3", "d": "4"}
        assert sorted(w.key for w in warnings) == ["a", "b", "c"]
        assert all(w.kind == WarningKind.COLLISION for w in warnings)

    def test_collision_warning_hides_values(self, build_source) -> None:
        _, warnings = compose([build_source("named_set", "user"), build_source("explicit", "user")])
        assert warnings[0].message == "credential 'user' from named_set overridden by explicit"
