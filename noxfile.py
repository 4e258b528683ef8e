"""Nox sessions for the zotu quality gates."""

from __future__ import annotations

import nox

nox.options.sessions = ["lint", "typecheck", "tests"]


@nox.session
def lint(session: nox.Session) -> None:
    """Run ruff lint and format checks without touching files."""
    session.install("ruff")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")


@nox.session
def typecheck(session: nox.Session) -> None:
    session.install("mypy")
    session.install("-e", ".")
    session.run("mypy", "src")


@nox.session
def tests(session: nox.Session) -> None:
    """Run pytest; extra args pass through (nox -s tests -- -k controller)."""
    session.install("-e", ".[test]")
    session.run("pytest", *session.posargs)


@nox.session
def smoke(session: nox.Session) -> None:
    """Exercise the installed CLI end to end on the fake audio output."""
    session.install("-e", ".")
    data_dir = session.create_tmp()
    session.run("zotu", "--data-dir", data_dir, "--backend", "fake", "doctor")
    session.run("zotu", "--data-dir", data_dir, "list")


@nox.session(python=False)
def local(session: nox.Session) -> None:
    """Run the toolchain from the current environment (no virtualenv)."""
    session.run("ruff", "check", "--fix", ".", external=True)
    session.run("ruff", "format", ".", external=True)
    session.run("mypy", "src", external=True)
    session.run("pytest", external=True)
