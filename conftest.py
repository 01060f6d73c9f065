from __future__ import annotations

import os


def pytest_configure(config) -> None:
    """
    Register markers and keep settings isolated from any local `.env` or
    Docker environment while tests run.
    """
    config.addinivalue_line("markers", "unit: fast tests without external services")

    os.environ.setdefault("DOCKER_CONTAINER", "false")
    os.environ.setdefault("TIER_CACHE_BACKEND", "memory")
