import nox

# Standard locations for the code
LOCATIONS = [
    "packages/core/src",
    "packages/infrastructure/messaging/src",
    "packages/infrastructure/observability/src",
    "packages/infrastructure/health/src",
    "packages/persistence/mongo/src",
    "packages/persistence/elasticsearch/src",
    "packages/services/gateway/src",
    "packages/services/delivery/src",
    "packages/services/logsink/src",
    "tests",
]


@nox.session(python=["3.10", "3.11", "3.12"])
def tests(session: nox.Session) -> None:
    """Run the complete test suite with coverage."""
    session.install("-e", ".[test]")
    session.run(
        "pytest",
        "--cov=commagg_core",
        "--cov=commagg_messaging",
        "--cov=commagg_gateway",
        "--cov=commagg_delivery",
        "--cov=commagg_logsink",
        *session.posargs,
    )


@nox.session(python=["3.10", "3.11", "3.12"])
def autoformat(session: nox.Session) -> None:
    """Fix linting issues and format code."""
    session.install("ruff")
    session.run("ruff", "check", "--fix", ".")
    session.run("ruff", "format", ".")


@nox.session(python=["3.10", "3.11", "3.12"])
def lint(session: nox.Session) -> None:
    """Run ruff linter and formatter checks."""
    session.install("ruff")
    session.run("ruff", "check", ".")
    session.run("ruff", "format", "--check", ".")


@nox.session(python=["3.10", "3.11", "3.12"])
def type_check(session: nox.Session) -> None:
    """Run mypy static type analysis."""
    session.install("-e", ".")
    session.install("mypy")
    session.run("mypy", *LOCATIONS[:-1])


@nox.session(python=["3.10", "3.11", "3.12"])
def arch_check(session: nox.Session) -> None:
    """Verify architectural boundaries using pytest-archon."""
    session.install("-e", ".[test]")
    session.run("pytest", "--no-cov", "tests/architecture", *session.posargs)


@nox.session(python=["3.10", "3.11", "3.12"])
def dead_code(session: nox.Session) -> None:
    """Scan for unused code using vulture."""
    session.install("vulture")
    session.run("vulture", "--exclude", ".nox", *LOCATIONS)
