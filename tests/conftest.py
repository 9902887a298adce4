import os
from pathlib import Path

import pytest

# Directory name -> markers applied to every test collected beneath it
LAYER_MARKERS = {
    "domain": ("domain",),
    "application": ("application",),
    "bdd": ("application",),
    "integration": ("integration", "slow"),
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="PROTEAN_ENV section of ordering/domain.toml to run against",
    )


def pytest_sessionstart(session):
    """Select the domain.toml environment before anything imports the domain.

    The ordering domain is initialized later, once per session, by the
    ``ordering_bed`` fixture.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    for item in items:
        parts = Path(item.fspath).parts
        for directory, markers in LAYER_MARKERS.items():
            if directory not in parts:
                continue
            for marker in markers:
                # Integration tests opt out of `slow` with @pytest.mark.fast
                if marker == "slow" and item.get_closest_marker("fast"):
                    continue
                item.add_marker(getattr(pytest.mark, marker))
            break
