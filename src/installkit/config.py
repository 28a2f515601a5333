"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for installkit:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.installkit/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_contexts_dir`, :func:`get_credentials_dir`.
* **Global config** -- A single :class:`~installkit.models.GlobalConfig`
  JSON file storing the persisted current context and defaults.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and global config into the current context name and
  the installer-context override.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

import yaml

from installkit.exceptions import ConfigError
from installkit.models import DEFAULT_CONTEXT_NAME, GlobalConfig

_APP_NAME = "installkit"
_CONFIG_FILENAME = "config.json"

ENV_CONTEXT = "INSTALLKIT_CONTEXT"
ENV_INSTALLER_CONTEXT = "INSTALLKIT_INSTALLER_CONTEXT"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform uses the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/installkit/`` (default
    ``~/.config/installkit/``). On macOS/Windows: ``~/.installkit/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (credential sets, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/installkit/`` (default
    ``~/.local/share/installkit/``). On macOS/Windows: ``~/.installkit/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_contexts_dir() -> Path:
    """Return the connection profile directory (``<config_dir>/contexts/``)."""
    path = get_config_dir() / "contexts"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_credentials_dir() -> Path:
    """Return the named credential-set directory (``<data_dir>/credentials/``)."""
    path = get_data_dir() / "credentials"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. When *mode* is
    given the permissions are applied before any content is written, so
    secrets are never readable by others, even momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Parse errors ---


def describe_yaml_error(exc: yaml.YAMLError) -> str:
    """Describe a YAML error by its problem and position only.

    ``str(exc)`` quotes the offending source line, which may hold secrets.
    """
    problem = getattr(exc, "problem", None) or type(exc).__name__
    mark = getattr(exc, "problem_mark", None)
    if mark is None:
        return problem
    return f"{problem} at line {mark.line + 1}, column {mark.column + 1}"


# --- Global config ---


def _global_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~installkit.models.GlobalConfig`, or a
        default instance if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_context: Optional[str] = None,
    cli_installer_context: Optional[str] = None,
) -> tuple[GlobalConfig, str, str]:
    """Resolve the current context and installer-context override.

    Current context precedence (high to low):
        1. ``--context`` CLI flag
        2. ``INSTALLKIT_CONTEXT`` environment variable
        3. ``current_context`` in the global config
        4. ``"default"``

    Installer-context override precedence (high to low):
        1. ``--installer-context`` CLI flag
        2. ``INSTALLKIT_INSTALLER_CONTEXT`` environment variable
        3. ``default_installer_context`` in the global config
        4. empty string (meaning "run the installer on the current context")

    Returns:
        A tuple of ``(global_config, current_context, installer_override)``.
    """
    global_cfg = load_global_config()

    current = global_cfg.current_context or DEFAULT_CONTEXT_NAME
    env_context = os.environ.get(ENV_CONTEXT)
    if env_context:
        current = env_context
    if cli_context:
        current = cli_context

    installer = global_cfg.default_installer_context or ""
    env_installer = os.environ.get(ENV_INSTALLER_CONTEXT)
    if env_installer:
        installer = env_installer
    if cli_installer_context is not None:
        installer = cli_installer_context

    return global_cfg, current, installer


def resolve_registry_auth_path(config: GlobalConfig) -> Path:
    """Return the docker-style ``config.json`` to read registry auths from."""
    if config.registry_auth_file:
        try:
            return Path(config.registry_auth_file).expanduser()
        except RuntimeError as exc:
            raise ConfigError(
                f"Cannot expand registry auth file {config.registry_auth_file}"
            ) from exc
    return Path.home() / ".docker" / "config.json"
