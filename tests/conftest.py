"""Shared fixtures and helpers for tests."""

import copy
from pathlib import Path
from typing import Any

import pytest

from dbdrill.core.catalog import Catalog
from dbdrill.db import InMemoryDatabase

_REPO_ROOT = Path(__file__).parent.parent

ORDER_QUERY = "SELECT * FROM orders WHERE id = $1"
CUSTOMER_QUERY = "SELECT * FROM customers WHERE id = $1"
TAG_QUERY = "SELECT * FROM tags WHERE name = ANY($1)"

SHOP_CONFIG: dict[str, Any] = {
    "order": {
        "name": "order",
        "search": {
            "by_id": {"query": ORDER_QUERY, "params": [{"name": "id", "type": "integer"}]},
        },
        "links": {
            "customer": {"kind": "customer", "search": "by_id", "search_params": ["customer_id"]},
            "tags": {
                "kind": "tag",
                "search": "by_names",
                "search_params": [{"json_path": ["payload", "$.tags"]}],
            },
        },
    },
    "customer": {
        "name": "customer",
        "search": {
            "by_id": {"query": CUSTOMER_QUERY, "params": [{"name": "id", "type": "integer"}]},
        },
    },
    "tag": {
        "name": "tag",
        "search": {
            "by_names": {"query": TAG_QUERY, "params": [{"name": "names", "type": "text[]"}]},
        },
    },
}


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def shop_config() -> dict[str, Any]:
    """Return a fresh copy of the order/customer/tag configuration."""
    return copy.deepcopy(SHOP_CONFIG)


@pytest.fixture
def catalog(shop_config: dict[str, Any]) -> Catalog:
    return Catalog.load(shop_config)


@pytest.fixture
def in_memory_db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def sample_resources_file() -> Path:
    """Return the path to the documented sample resources file."""
    return _REPO_ROOT / "docs" / "resources.toml"
