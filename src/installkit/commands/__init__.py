"""Built-in CLI sub-commands for installkit.

* :mod:`~installkit.commands.context` -- import, list, inspect, and switch
  connection profiles.
* :mod:`~installkit.commands.credentials` -- manage named credential sets
  and preview the composed credential set.

Each module exports a :class:`typer.Typer` sub-application registered on the
root app in :func:`installkit.app.main`.
"""
