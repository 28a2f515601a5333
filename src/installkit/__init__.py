"""installkit -- Resolve installer contexts and credential sets for bundle installs.

Before an application bundle is installed against an orchestration endpoint,
the installer needs two things: a *connection profile* to run under (the
installer context) and a merged *credential set* built from several sources.
This package assembles both and hands them to an execution engine.

Typical workflow::

    installkit context import installer ./context.json   # seed the store
    installkit credentials resolve --credential-set prod --credential user=alice

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and active-context precedence.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    pipeline: resolve -> compose -> activate orchestration.
"""

__version__ = "0.1.0"
