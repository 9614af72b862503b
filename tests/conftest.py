"""
conftest.py
-----------
Shared pytest fixtures for Commonplace tests.

Provides fixtures for:
- Temporary store roots and Store instances
- LinkGraph over the test store
- Sample on-disk entry text
"""
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory

from commonplace.core.config import StoreConfig
from commonplace.core.logging_manager import CommonplaceLogger
from commonplace.links.graph import LinkGraph
from commonplace.store.manager import Store


# ----- Path Fixtures -----

@pytest.fixture
def tmp_dir():
    """Create a temporary directory for test file operations."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store_root(tmp_dir):
    """Existing, empty store root."""
    root = tmp_dir / "store"
    root.mkdir()
    return root


# ----- Store Fixtures -----

@pytest.fixture
def store(store_root):
    """Store without a logger."""
    return Store(store_root)


@pytest.fixture
def graph(store):
    """LinkGraph over the test store."""
    return LinkGraph(store)


@pytest.fixture
def test_logger(tmp_dir):
    """Real CommonplaceLogger writing below the temporary directory."""
    logger = CommonplaceLogger(tmp_dir / "logs", component_name="test")
    yield logger
    logger.close()


@pytest.fixture
def logged_store(store_root, test_logger):
    """Store that logs to the temporary log directory."""
    return Store(store_root, config=StoreConfig(), logger=test_logger)


# ----- Sample Content Fixtures -----

@pytest.fixture
def minimal_entry_text():
    """Minimal valid entry: only the schema version."""
    return """---
commonplace:
  version: 1.0.0
---

woke up at 7
"""


@pytest.fixture
def rich_entry_text():
    """Entry with links, tags and a domain namespace."""
    return """---
commonplace:
  version: 1.0.0
  links:
  - contact/alice
  tags:
  - morning
  - travel
diary:
  date: 2024-01-01
  mood: rested
  steps: 10432
  weather:
    rain: false
    celsius: 4.5
---

# Monday

Took the train to Montréal.
"""


@pytest.fixture
def write_entry(store_root):
    """Factory writing raw entry text at the location of an identifier."""

    def _write(identifier: str, text: str) -> Path:
        *parents, name = identifier.split("/")
        path = store_root.joinpath(*parents, f"{name}.md")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
