"""Nox sessions for tests, linting, typing and provider isolation."""

import nox

PYTHON_VERSIONS = ["3.13"]
nox.options.sessions = ["tests", "lint", "isolation"]


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run unit and property tests with branch coverage of inbox_targeting."""
    session.run("uv", "sync", "--extra", "test", external=True)
    session.run(
        "pytest",
        "--cov=inbox_targeting",
        "--cov-branch",
        "--cov-report=term-missing:skip-covered",
        *session.posargs,
    )


@nox.session(python=PYTHON_VERSIONS)
def properties(session: nox.Session) -> None:
    """Run only the hypothesis invariant suites."""
    session.run("uv", "sync", "--extra", "test", external=True)
    session.run("pytest", "-m", "property", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def lint(session: nox.Session) -> None:
    """Check style and formatting with ruff."""
    session.run("uv", "sync", "--extra", "dev", external=True)
    session.run("ruff", "check", "src", "tests", "scripts")
    session.run("ruff", "format", "--check", "src", "tests", "scripts")


@nox.session(python=PYTHON_VERSIONS)
def typecheck(session: nox.Session) -> None:
    """Type-check with basedpyright."""
    session.run("uv", "sync", "--extra", "test", external=True)
    session.run("uvx", "basedpyright@latest", "src", "tests", external=True)


@nox.session(venv_backend="none")
def isolation(session: nox.Session) -> None:
    """Keep push provider packages reachable only through the plugin loader."""
    session.run("python3", "scripts/check_provider_isolation.py", external=True)
