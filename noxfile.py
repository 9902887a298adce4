import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]

# Test layers, selected through the markers tests/conftest.py applies by directory
LAYERS = ["domain", "application", "integration"]


def _install(session: nox.Session) -> None:
    """Install orderflow and its test group into the nox virtualenv."""
    session.run("poetry", "install", "--with", "test", external=True)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run the orderflow suite on every supported interpreter."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
@nox.parametrize("layer", LAYERS)
def layer(session: nox.Session, layer: str) -> None:
    """Run a single test layer, e.g. ``nox -s "layer(layer='domain')"``."""
    _install(session)
    session.run("pytest", "-m", layer, *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def concurrency(session: nox.Session) -> None:
    """Repeat the lock contention tests; races show up intermittently."""
    _install(session)
    for _ in range(int(session.posargs[0]) if session.posargs else 5):
        session.run("pytest", "-q", "tests/ordering/application/test_concurrency.py")


@nox.session(python=PYTHON_VERSIONS[-1])
def coverage(session: nox.Session) -> None:
    _install(session)
    session.run("pytest", "--cov=ordering", "--cov-report=term-missing")
