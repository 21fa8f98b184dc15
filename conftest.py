"""
Root conftest.py for the Grafana-banana project.

Makes each service directory importable so service tests run from the
repository root without installing the package first.
"""

import sys
from pathlib import Path


def pytest_configure(config):
    """
    Add every service directory under services/ to sys.path.

    Runs before test modules and their conftest files are imported.
    """
    root_dir = Path(__file__).parent

    for service_path in sorted((root_dir / "services").iterdir()):
        if service_path.is_dir() and str(service_path) not in sys.path:
            sys.path.insert(0, str(service_path))
