"""Credential commands -- manage named credential sets and preview composition.

Named credential sets are stored per target context. ``resolve`` runs the
full pipeline (installer-context resolution, composition, activation) and
prints which keys the installer would receive, never their values.

Typical workflow::

    installkit credentials add ./prod.yaml
    installkit credentials resolve --credential-set prod --credential user=alice
"""

from __future__ import annotations

from typing import Optional

import typer

from installkit.exceptions import CompositionError, InstallkitError
from installkit.output import error, format_response, print_table, success, warning


credentials_app = typer.Typer(no_args_is_help=True)


def _fail(exc: InstallkitError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def _current_context(ctx: typer.Context) -> str:
    from installkit.config import resolve_config

    cli_context = ctx.obj.get("context") if ctx.obj else None
    _, current, _ = resolve_config(cli_context=cli_context)
    return current


@credentials_app.command("ls")
def credentials_list(ctx: typer.Context) -> None:
    """List credential sets stored for the current context."""
    from installkit.credentials import CredentialStore

    try:
        context = _current_context(ctx)
        store = CredentialStore(context)
        rows = []
        for name in store.list_names():
            credential_set = store.read(name)
            rows.append([name, str(len(credential_set.credentials))])
    except InstallkitError as exc:
        raise _fail(exc) from None
    print_table(["NAME", "CREDENTIALS"], rows, title=f"Credential sets ({context})")


@credentials_app.command("add")
def credentials_add(
    ctx: typer.Context,
    source: str = typer.Argument(help="Credential set file (JSON/YAML) or URL."),
    name: Optional[str] = typer.Option(
        None, "--name", help="Store under this name instead of the one in the file."
    ),
) -> None:
    """Validate a credential set file and store it for the current context.

    Only the value strategies are stored; environment variables and files
    are read again each time the set is resolved.
    """
    from installkit.credentials import CredentialStore
    from installkit.credentials.loader import load_credential_set_file

    try:
        context = _current_context(ctx)
        credential_set = load_credential_set_file(source)
        if name:
            credential_set = credential_set.model_copy(update={"name": name})
        CredentialStore(context).save(credential_set)
    except InstallkitError as exc:
        raise _fail(exc) from None
    success(f'Credential set "{credential_set.name}" stored for context "{context}".')


@credentials_app.command("rm")
def credentials_remove(
    ctx: typer.Context,
    name: str = typer.Argument(help="Credential set to remove."),
) -> None:
    """Remove a stored credential set from the current context."""
    from installkit.credentials import CredentialStore

    try:
        context = _current_context(ctx)
        CredentialStore(context).delete(name)
    except InstallkitError as exc:
        raise _fail(exc) from None
    success(f'Credential set "{name}" removed.')


@credentials_app.command("resolve")
def credentials_resolve(
    ctx: typer.Context,
    credential_sets: Optional[list[str]] = typer.Option(
        None,
        "--credential-set",
        help="Credential set from the store, or a JSON/YAML file. Repeatable.",
    ),
    credentials: Optional[list[str]] = typer.Option(
        None,
        "--credential",
        help="Single name=value credential, applied on top of credential sets. Repeatable.",
    ),
    with_registry_auth: bool = typer.Option(
        False, "--with-registry-auth", help="Send registry auth to the installer."
    ),
    installer_context: Optional[str] = typer.Option(
        None,
        "--installer-context",
        help="Context the installer runs on (default: <current-context>).",
    ),
) -> None:
    """Show the installer context and credential keys an install would use.

    Values are always masked. Source collisions and skipped optional sources
    are reported as warnings on stderr.

    Example::

        installkit credentials resolve --credential-set prod \\
            --credential user=alice --with-registry-auth
    """
    from installkit.config import resolve_config, resolve_registry_auth_path
    from installkit.contexts import ProfileStore, Session
    from installkit.pipeline import CredentialOptions, prepare_installation

    cli_context = ctx.obj.get("context") if ctx.obj else None
    try:
        config, current, installer = resolve_config(
            cli_context=cli_context, cli_installer_context=installer_context
        )
        session = Session(ProfileStore(), active=current)
        prepared = prepare_installation(
            session,
            CredentialOptions(
                installer_context=installer,
                credential_sets=credential_sets or [],
                credentials=credentials or [],
                with_registry_auth=with_registry_auth,
                registry_auth_file=resolve_registry_auth_path(config),
            ),
        )
    except CompositionError as exc:
        error(str(exc.source_error))
        raise typer.Exit(code=exc.exit_code) from None
    except InstallkitError as exc:
        raise _fail(exc) from None

    for item in prepared.warnings:
        warning(item.message)

    format_response(
        {
            "target_context": prepared.target_context,
            "installer_context": prepared.installer_context,
            **prepared.credentials.redacted(),
        }
    )
