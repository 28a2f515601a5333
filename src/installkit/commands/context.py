"""Context commands -- manage connection profiles.

Provides the ``installkit context`` sub-command group: import a profile from
packaged material, list and inspect stored profiles, switch the persisted
current context, and remove profiles. Credential material is always masked
on output.

Typical workflow::

    installkit context import installer ./context.json
    installkit context use installer
    installkit context inspect installer
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from installkit.contexts.bootstrap import BOOTSTRAP_PROFILE_NAME, BOOTSTRAP_PROFILE_PATH
from installkit.exceptions import InstallkitError
from installkit.output import (
    error,
    format_response,
    info,
    print_data,
    print_table,
    success,
    suggest,
)


context_app = typer.Typer(no_args_is_help=True)


def _fail(exc: InstallkitError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def _cli_context(ctx: typer.Context) -> str | None:
    return ctx.obj.get("context") if ctx.obj else None


@context_app.command("import")
def context_import(
    name: str = typer.Argument(
        BOOTSTRAP_PROFILE_NAME, help="Name to store the context under."
    ),
    material: Path = typer.Argument(
        Path(BOOTSTRAP_PROFILE_PATH),
        help="JSON/YAML file describing the endpoint.",
    ),
    registry_auth: Optional[Path] = typer.Option(
        None,
        "--registry-auth",
        help="docker-style registry auth file to use for --with-registry-auth.",
    ),
) -> None:
    """Import a connection profile from packaged material.

    Without arguments the packaged installer profile is imported as
    ``installer``. An existing context with the same name is overwritten.
    The imported context is not made current.

    Example::

        installkit context import installer /cnab/app/credentials/context.json \\
            --registry-auth /cnab/app/credentials/registry.json
    """
    from installkit.config import load_global_config, save_global_config
    from installkit.contexts import ProfileStore, import_bootstrap_profile
    from installkit.contexts.bootstrap import load_bootstrap_registry_auth

    store = ProfileStore()
    try:
        existed = store.exists(name)
        auths = load_bootstrap_registry_auth(registry_auth) if registry_auth else None
        import_bootstrap_profile(name, material, store)
        if registry_auth is not None:
            config = load_global_config()
            config.registry_auth_file = str(registry_auth.resolve())
            save_global_config(config)
    except InstallkitError as exc:
        raise _fail(exc) from None

    if existed:
        info(f'Context "{name}" already existed and was overwritten.')
    if auths is not None:
        info(f"Registry auth for {len(auths)} host(s) configured from {registry_auth}.")
    success(f'Context "{name}" imported.')
    suggest(f"Make it current: installkit context use {name}")


@context_app.command("ls")
def context_list(ctx: typer.Context) -> None:
    """List stored contexts, marking the current one."""
    from installkit.config import resolve_config
    from installkit.contexts import ProfileStore
    from installkit.models import DEFAULT_CONTEXT_NAME

    try:
        _, current, _ = resolve_config(cli_context=_cli_context(ctx))
        store = ProfileStore()
        names = store.list_names()
        if DEFAULT_CONTEXT_NAME not in names:
            names.insert(0, DEFAULT_CONTEXT_NAME)
        rows = []
        for name in names:
            profile = store.lookup(name)
            rows.append(
                [
                    name + (" *" if name == current else ""),
                    profile.endpoint.kind.value,
                    profile.endpoint.host,
                    "yes" if profile.has_credential_material() else "no",
                ]
            )
    except InstallkitError as exc:
        raise _fail(exc) from None

    print_table(["NAME", "KIND", "HOST", "CREDENTIALS"], rows, title="Contexts")


@context_app.command("inspect")
def context_inspect(
    name: str = typer.Argument(help="Context to show."),
) -> None:
    """Show a context with its credential material masked."""
    from installkit.contexts import ProfileStore

    try:
        profile = ProfileStore().lookup(name)
    except InstallkitError as exc:
        raise _fail(exc) from None
    format_response(profile.redacted())


@context_app.command("use")
def context_use(
    name: str = typer.Argument(help="Context to make current."),
) -> None:
    """Make *name* the persisted current context."""
    from installkit.config import load_global_config, save_global_config
    from installkit.contexts import ProfileStore, Session

    try:
        config = load_global_config()
        session = Session(ProfileStore(), active=config.current_context or "")
        session.set_active(name)
    except InstallkitError as exc:
        raise _fail(exc) from None

    config.current_context = session.active
    save_global_config(config)
    success(f'Current context is now "{name}".')


@context_app.command("current")
def context_current(ctx: typer.Context) -> None:
    """Print the current context name."""
    from installkit.config import resolve_config

    try:
        _, current, _ = resolve_config(cli_context=_cli_context(ctx))
    except InstallkitError as exc:
        raise _fail(exc) from None
    print_data(current)


@context_app.command("rm")
def context_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Context to remove."),
) -> None:
    """Remove a stored context.

    Removing the current context asks for confirmation unless ``--force``
    is active, and resets the current context to ``default``.
    """
    from installkit.config import load_global_config, save_global_config
    from installkit.contexts import ProfileStore

    force = ctx.obj.get("force", False) if ctx.obj else False
    try:
        config = load_global_config()
        is_current = config.current_context == name
        if is_current and not force:
            if not typer.confirm(f'"{name}" is the current context. Remove it?'):
                info("Cancelled.")
                raise typer.Exit()
        ProfileStore().remove(name)
    except InstallkitError as exc:
        raise _fail(exc) from None

    if is_current:
        config.current_context = None
        save_global_config(config)
        info("Current context reset to default.")
    success(f'Context "{name}" removed.')
