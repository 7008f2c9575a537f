"""Tests for the Typer-based CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import responses
import yaml
from typer.testing import CliRunner

from compound_cache.cli import app
from compound_cache.identifiers import CompoundIdentifier
from compound_cache.properties import ALL_PROPERTIES
from compound_cache.store import CompoundCache
from tests.fixtures.compounds import make_properties

BASE_URL = "https://pubchem.test/rest/pug"
CO2_URL = f"{BASE_URL}/compound/name/Carbon%20Dioxide/property/{','.join(ALL_PROPERTIES)}/JSON"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cache_path(tmp_path: Path) -> Path:
    return tmp_path / "compounds.json"


@pytest.fixture()
def sample_config(tmp_path: Path, cache_path: Path) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "pubchem": {"base_url": BASE_URL, "retries": {"total": 0}},
                "cache": {"path": str(cache_path)},
                "logging": {"level": "WARNING"},
            }
        ),
        encoding="utf-8",
    )
    return config_path


def _seed(cache_path: Path) -> None:
    cache = CompoundCache()
    cache.insert_raw(CompoundIdentifier.with_name("Carbon Dioxide"), make_properties())
    cache.insert_raw(CompoundIdentifier.with_id(962), make_properties(cid=962, title="Water"))
    cache.save(cache_path)


@responses.activate
def test_fetch_caches_and_writes_document(
    runner: CliRunner, sample_config: Path, cache_path: Path, pubchem_co2_record: dict[str, Any]
) -> None:
    responses.add(responses.GET, CO2_URL, json={"PropertyTable": {"Properties": [pubchem_co2_record]}})

    result = runner.invoke(app, ["--config", str(sample_config), "fetch", "Carbon Dioxide"])

    assert result.exit_code == 0, result.output
    assert "name:Carbon Dioxide\tfetched\tcid=280" in result.stdout
    document = json.loads(cache_path.read_text(encoding="utf-8"))
    assert document["cache"][0]["namespace"] == "name"
    assert document["cache"][0]["properties"]["molecular_formula"] == "CO2"


@responses.activate
def test_fetch_hit_skips_network(runner: CliRunner, sample_config: Path, cache_path: Path) -> None:
    _seed(cache_path)

    result = runner.invoke(app, ["--config", str(sample_config), "fetch", "name:Carbon Dioxide"])

    assert result.exit_code == 0, result.output
    assert "\thit\t" in result.stdout
    assert len(responses.calls) == 0


@responses.activate
def test_fetch_overwrite_refetches(
    runner: CliRunner, sample_config: Path, cache_path: Path, pubchem_co2_record: dict[str, Any]
) -> None:
    _seed(cache_path)
    responses.add(
        responses.GET,
        CO2_URL,
        json={"PropertyTable": {"Properties": [dict(pubchem_co2_record, Title="Refreshed")]}},
    )

    result = runner.invoke(app, ["--config", str(sample_config), "fetch", "--overwrite", "Carbon Dioxide"])

    assert result.exit_code == 0, result.output
    assert "\trefreshed\t" in result.stdout
    cache = CompoundCache.load(cache_path)
    assert cache.get_cached(CompoundIdentifier.with_name("Carbon Dioxide")).title == "Refreshed"  # type: ignore[union-attr]


@responses.activate
def test_fetch_reports_failures_and_still_saves(
    runner: CliRunner, sample_config: Path, cache_path: Path, pubchem_co2_record: dict[str, Any]
) -> None:
    responses.add(responses.GET, CO2_URL, json={"PropertyTable": {"Properties": [pubchem_co2_record]}})
    responses.add(
        responses.GET,
        f"{BASE_URL}/compound/name/unobtainium/property/{','.join(ALL_PROPERTIES)}/JSON",
        status=404,
    )

    result = runner.invoke(app, ["--config", str(sample_config), "fetch", "unobtainium", "cid:x", "Carbon Dioxide"])

    assert result.exit_code == 1
    assert "name:Carbon Dioxide\tfetched" in result.stdout
    assert len(CompoundCache.load(cache_path)) == 1


def test_cache_option_overrides_config(runner: CliRunner, sample_config: Path, tmp_path: Path) -> None:
    other = tmp_path / "other.json"
    _seed(other)

    result = runner.invoke(app, ["--config", str(sample_config), "--cache", str(other), "list"])

    assert result.exit_code == 0, result.output
    assert result.stdout.splitlines() == ["name:Carbon Dioxide\tCarbon Dioxide", "cid:962\tWater"]


def test_list_empty_cache(runner: CliRunner, sample_config: Path) -> None:
    result = runner.invoke(app, ["--config", str(sample_config), "list"])

    assert result.exit_code == 0
    assert result.stdout == ""


def test_show_prints_cached_properties(runner: CliRunner, sample_config: Path, cache_path: Path) -> None:
    _seed(cache_path)

    result = runner.invoke(app, ["--config", str(sample_config), "show", "cid:962"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["cid"] == 962
    assert payload["title"] == "Water"


def test_show_missing_entry_fails(runner: CliRunner, sample_config: Path) -> None:
    result = runner.invoke(app, ["--config", str(sample_config), "show", "Carbon Dioxide"])

    assert result.exit_code == 1
    assert "name:Carbon Dioxide is not cached" in result.output


@responses.activate
def test_show_fetch_always_resolves(
    runner: CliRunner, sample_config: Path, cache_path: Path, pubchem_co2_record: dict[str, Any]
) -> None:
    _seed(cache_path)
    responses.add(responses.GET, CO2_URL, json={"PropertyTable": {"Properties": [pubchem_co2_record]}})

    result = runner.invoke(app, ["--config", str(sample_config), "show", "--fetch", "Carbon Dioxide"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["cid"] == 280
    assert len(responses.calls) == 1


def test_invalid_config_exits_with_usage_error(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"cache": {"unknown": True}}), encoding="utf-8")

    result = runner.invoke(app, ["--config", str(config_path), "list"])

    assert result.exit_code == 2
