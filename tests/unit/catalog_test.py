"""Unit tests for loading and validating the resource catalog."""

from pathlib import Path
from typing import Any

import pytest

from dbdrill.core.catalog import Catalog
from dbdrill.errors import ConfigurationError
from dbdrill.models import SearchParamType


def test_load_builds_lookups(catalog: Catalog) -> None:
    assert len(catalog) == 3
    assert catalog.searches("order") == ["by_id"]
    assert catalog.links("order") == ["customer", "tags"]
    assert catalog.links("customer") == []
    assert catalog.search("tag", "by_names").params[0].type is SearchParamType.TEXT_ARRAY
    assert catalog.link("order", "customer").kind == "customer"


def test_unknown_lookups_return_nothing(catalog: Catalog) -> None:
    assert catalog.resource("invoice") is None
    assert catalog.search("order", "by_date") is None
    assert catalog.search("invoice", "by_id") is None
    assert catalog.link("order", "shipment") is None
    assert catalog.searches("invoice") == []
    assert catalog.links("invoice") == []


def test_all_resources_are_ordered_by_name(shop_config: dict[str, Any]) -> None:
    shop_config["customer"]["name"] = "buyer"
    shop_config["order"]["name"] = "zz order"
    catalog = Catalog.load(shop_config)

    assert [rid for rid, _ in catalog.all_resources()] == ["customer", "tag", "order"]


def test_load_is_repeatable(shop_config: dict[str, Any]) -> None:
    first = Catalog.load(shop_config)
    second = Catalog.load(shop_config)

    assert first.all_resources() == second.all_resources()


def test_empty_document_is_an_empty_catalog() -> None:
    assert len(Catalog.load({})) == 0


def test_link_to_missing_resource(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["customer"]["kind"] = "client"

    with pytest.raises(ConfigurationError) as exc_info:
        Catalog.load(shop_config)

    assert exc_info.value.resource_id == "order"
    assert exc_info.value.link_id == "customer"
    assert "non existing resource client" in str(exc_info.value)
    assert str(exc_info.value).startswith("error validating order.links.customer: ")


def test_link_to_missing_search(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["customer"]["search"] = "by_email"

    with pytest.raises(ConfigurationError, match="has no search named by_email"):
        Catalog.load(shop_config)


def test_link_arity_mismatch(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["customer"]["search_params"] = ["customer_id", "id"]

    with pytest.raises(ConfigurationError) as exc_info:
        Catalog.load(shop_config)

    assert exc_info.value.link_id == "customer"
    assert "has 1 params but link specifies 2" in str(exc_info.value)


def test_invalid_json_path_in_link_params(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["tags"]["search_params"] = [{"json_path": ["payload", "$["]}]

    with pytest.raises(ConfigurationError, match="invalid JSONPath expression for search parameter 0"):
        Catalog.load(shop_config)


def test_invalid_json_path_in_link_condition(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["customer"]["if"] = {"eq": [{"json_path": ["payload", "$["]}, "x"]}

    with pytest.raises(ConfigurationError, match=r'link condition \("if"\)'):
        Catalog.load(shop_config)


def test_valid_link_condition_is_accepted(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["customer"]["if"] = {"eq": ["status", "open"]}

    catalog = Catalog.load(shop_config)

    assert catalog.link("order", "customer").condition.eq == ("status", "open")


def test_duplicate_resource_names(shop_config: dict[str, Any]) -> None:
    shop_config["tag"]["name"] = "customer"

    with pytest.raises(ConfigurationError, match="error validating tag: resource has the same name as customer"):
        Catalog.load(shop_config)


def test_empty_resource_name(shop_config: dict[str, Any]) -> None:
    shop_config["tag"]["name"] = ""

    with pytest.raises(ConfigurationError, match="empty name"):
        Catalog.load(shop_config)


def test_empty_resource_id(shop_config: dict[str, Any]) -> None:
    shop_config[""] = {"name": "nameless"}

    with pytest.raises(ConfigurationError, match="can't be empty"):
        Catalog.load(shop_config)


def test_violation_reported_doesnt_depend_on_key_order(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["links"]["customer"]["kind"] = "client"
    shop_config["tag"]["name"] = "customer"
    reordered = dict(reversed(list(shop_config.items())))

    with pytest.raises(ConfigurationError) as first:
        Catalog.load(shop_config)
    with pytest.raises(ConfigurationError) as second:
        Catalog.load(reordered)

    assert str(first.value) == str(second.value)


@pytest.mark.parametrize(
    ("mutate", "location"),
    [
        (lambda cfg: cfg["order"].pop("name"), "order.name"),
        (lambda cfg: cfg["order"]["search"]["by_id"].pop("query"), "order.search.by_id.query"),
        (lambda cfg: cfg["order"]["links"]["customer"].pop("kind"), "order.links.customer.kind"),
        (
            lambda cfg: cfg["order"]["links"]["customer"].pop("search_params"),
            "order.links.customer.search_params",
        ),
        (lambda cfg: cfg["order"].update(colour="red"), "order.colour"),
    ],
    ids=["missing-name", "missing-query", "missing-kind", "missing-search-params", "unknown-field"],
)
def test_malformed_document(shop_config: dict[str, Any], mutate: Any, location: str) -> None:
    mutate(shop_config)

    with pytest.raises(ConfigurationError, match=f"invalid configuration at {location}"):
        Catalog.load(shop_config)


def test_unknown_param_type(shop_config: dict[str, Any]) -> None:
    shop_config["order"]["search"]["by_id"]["params"][0]["type"] = "money"

    with pytest.raises(ConfigurationError, match="invalid configuration at order.search.by_id.params.0.type"):
        Catalog.load(shop_config)


def test_load_file_reads_sample(sample_resources_file: Path) -> None:
    catalog = Catalog.load_file(sample_resources_file)

    assert [rid for rid, _ in catalog.all_resources()] == ["blog", "post", "user"]
    assert catalog.link("blog", "editors").condition is not None


def test_load_file_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="error opening resources file"):
        Catalog.load_file(tmp_path / "missing.toml")


def test_load_file_bad_toml(tmp_path: Path) -> None:
    path = tmp_path / "resources.toml"
    path.write_text("[user\nname = ", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="error parsing resources file"):
        Catalog.load_file(path)
