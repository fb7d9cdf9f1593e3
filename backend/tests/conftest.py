"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend to avoid sandbox restrictions
that can affect the Trio backend (e.g., socketpair permission errors), and
keep every test on a fresh in-memory record store.
"""
import os
import sys
from pathlib import Path

import pytest

# Importing `main` runs the startup guard; keep it in a permissive env.
os.environ["UNITRACK_ENV"] = "test"
os.environ["ACADEMICS_STORE_BACKEND"] = "memory"

# Ensure modules in backend/ and backend/web are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
WEB_DIR = BACKEND_DIR / "web"
TESTS_DIR = BACKEND_DIR / "tests"
for p in (str(REPO_ROOT), str(BACKEND_DIR), str(WEB_DIR), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_academics_store_between_tests():
    """Give the academics router a fresh in-memory store per test.

    Behavior:
        - Replaces the module-level store and config of ``routes.academics``.
        - Tests that need data call ``set_store`` with a seeded store.
    """
    from academics.config import AcademicsConfig
    from academics.store import InMemoryRecordStore
    import routes.academics as academics  # type: ignore

    academics.set_store(InMemoryRecordStore())
    academics.set_config(AcademicsConfig())
    yield
    academics.set_store(None)
    academics.set_config(None)
