"""Canonical Pydantic models shared across all installkit modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Connection profiles** -- persisted by the profile store and imported from
packaged material:
    :class:`EndpointKind`, :class:`EndpointMeta`, :class:`TLSMaterial`,
    :class:`ConnectionProfile`.

**Credentials** -- built fresh for every installer invocation and never
persisted by the core:
    :class:`AuthEntry`, :class:`CredentialSet`, :class:`CompositionWarning`,
    plus the serialised named-set format :class:`CredentialSetFile`.

**Configuration** -- serialised as JSON in the user's config directory:
    :class:`OutputConfig`, :class:`GlobalConfig`.

All models use Pydantic v2.
"""

from __future__ import annotations

import base64
import binascii
import enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CONTEXT_NAME = "default"
"""Reserved profile name that always resolves, even without a store entry."""

MASK = "********"


# --- Connection profiles ---


class EndpointKind(str, enum.Enum):
    """Transport of the orchestration endpoint a profile points at."""

    DOCKER = "docker"
    KUBERNETES = "kubernetes"


class EndpointMeta(BaseModel):
    """Address and transport settings of an orchestration endpoint."""

    host: str = Field(description="Endpoint address, e.g. tcp://10.0.0.5:2376")
    kind: EndpointKind = EndpointKind.DOCKER
    skip_tls_verify: bool = False
    namespace: Optional[str] = Field(
        default=None, description="Default namespace (kubernetes endpoints only)"
    )


class TLSMaterial(BaseModel):
    """PEM-encoded TLS material used to reach an endpoint."""

    ca: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.ca or self.cert or self.key)


class ConnectionProfile(BaseModel):
    """A named endpoint plus the credential material needed to reach it.

    Profiles are owned by :class:`~installkit.contexts.store.ProfileStore`.
    They are created by import or ``put`` and looked up by name; an import
    either yields a fully validated profile or writes nothing.

    Example::

        ConnectionProfile(
            name="installer",
            endpoint=EndpointMeta(host="tcp://10.0.0.5:2376"),
            tls=TLSMaterial(ca="...", cert="...", key="..."),
        )
    """

    name: str
    description: Optional[str] = None
    endpoint: EndpointMeta
    tls: Optional[TLSMaterial] = None
    token: Optional[str] = Field(default=None, description="Endpoint auth token")

    def has_credential_material(self) -> bool:
        """Return ``True`` if the profile carries TLS material or a token."""
        if self.token:
            return True
        return self.tls is not None and not self.tls.is_empty()

    def credential_material(self) -> dict[str, Any]:
        """Return endpoint and credential material as a structured blob."""
        data: dict[str, Any] = {
            "name": self.name,
            "endpoint": self.endpoint.model_dump(mode="json"),
        }
        if self.tls is not None and not self.tls.is_empty():
            data["tls"] = self.tls.model_dump(mode="json", exclude_none=True)
        if self.token:
            data["token"] = self.token
        return data

    def redacted(self) -> dict[str, Any]:
        """Return a display-safe dump with secret material masked."""
        data = self.model_dump(mode="json", exclude_none=True)
        if "tls" in data:
            data["tls"] = {k: MASK for k in data["tls"]}
        if "token" in data:
            data["token"] = MASK
        return data


# --- Credentials ---


class AuthEntry(BaseModel):
    """Registry authentication entry, as found in a docker-style ``config.json``.

    When only the combined base64 ``auth`` field is present it is decoded into
    ``username`` and ``password``.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    auth: Optional[str] = None
    identitytoken: Optional[str] = None
    registrytoken: Optional[str] = None
    serveraddress: Optional[str] = None

    @model_validator(mode="after")
    def _decode_auth(self) -> "AuthEntry":
        if self.auth and not (self.username or self.password):
            try:
                decoded = base64.b64decode(self.auth).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as exc:
                raise ValueError(f"invalid base64 in auth field: {exc}") from exc
            username, sep, password = decoded.partition(":")
            if not sep:
                raise ValueError("auth field must encode 'username:password'")
            self.username = username
            self.password = password
        return self


CredentialValue = Union[str, dict[str, Any]]


class CredentialSet(BaseModel):
    """Merged credential keys for one installer operation.

    ``credentials`` keeps insertion order; writing an existing key replaces
    its value in place. ``registry_auth`` maps registry hosts to their
    :class:`AuthEntry`.
    """

    credentials: dict[str, CredentialValue] = Field(default_factory=dict)
    registry_auth: dict[str, AuthEntry] = Field(default_factory=dict)

    def __contains__(self, key: object) -> bool:
        return key in self.credentials

    def __len__(self) -> int:
        return len(self.credentials)

    def __getitem__(self, key: str) -> CredentialValue:
        return self.credentials[key]

    def set(self, key: str, value: CredentialValue) -> None:
        self.credentials[key] = value

    def keys(self) -> list[str]:
        return list(self.credentials)

    def redacted(self) -> dict[str, Any]:
        """Return a display copy where every credential value is masked."""
        return {
            "credentials": {key: MASK for key in self.credentials},
            "registry_auth": sorted(self.registry_auth),
        }


class WarningKind(str, enum.Enum):
    COLLISION = "collision"
    SOURCE_FAILURE = "source_failure"


class CompositionWarning(BaseModel):
    """Non-fatal event recorded while composing a credential set.

    ``collision`` warnings name the overwritten key together with the source
    that wrote it first and the one that replaced it. ``source_failure``
    warnings record an optional source whose contribution was dropped.
    """

    kind: WarningKind
    key: Optional[str] = None
    previous_source: Optional[str] = None
    new_source: str
    message: str


class ValueSource(BaseModel):
    """Where a named-set credential value comes from. Exactly one field is set."""

    value: Optional[str] = None
    env: Optional[str] = None
    path: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "ValueSource":
        given = [f for f in ("value", "env", "path") if getattr(self, f) is not None]
        if len(given) != 1:
            raise ValueError(
                "credential source must set exactly one of value, env, path "
                f"(got {', '.join(given) or 'none'})"
            )
        return self


class CredentialStrategy(BaseModel):
    name: str
    source: ValueSource


class CredentialSetFile(BaseModel):
    """Serialised named credential set, stored as JSON or YAML.

    Example::

        name: production
        credentials:
          - name: kubeconfig
            source:
              path: ~/.kube/config
          - name: api-token
            source:
              env: PROD_API_TOKEN
    """

    name: str
    credentials: list[CredentialStrategy] = Field(default_factory=list)


# --- Configuration ---


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/installkit/config.json``.

    ``current_context`` is the persisted active-profile pointer. It only
    changes through ``installkit context use``; commands that switch to an
    installer context do so on the in-memory
    :class:`~installkit.contexts.resolver.Session` instead.
    """

    model_config = ConfigDict(extra="allow")

    current_context: Optional[str] = None
    default_installer_context: Optional[str] = None
    registry_auth_file: Optional[str] = Field(
        default=None,
        description="docker-style config.json holding registry auths "
        "(default: ~/.docker/config.json)",
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
