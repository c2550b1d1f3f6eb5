from pathlib import Path

import pytest

from commission_recon.config import get_default_config, load_config, merge_dict

SHIPPED_CONFIG = Path(__file__).resolve().parent.parent / "config" / "commission_policy.yaml"


def test_merge_dict_is_recursive_and_replaces_lists():
    base = {"a": {"b": 1, "c": 2}, "tiers": [1, 2, 3]}
    merge_dict(base, {"a": {"c": 5}, "tiers": [9]})
    assert base == {"a": {"b": 1, "c": 5}, "tiers": [9]}


def test_defaults_are_independent_copies():
    first = get_default_config()
    first["limits"]["max_rows"] = 1
    assert get_default_config()["limits"]["max_rows"] == 50000


def test_load_config_overrides_defaults(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("summary:\n  heuristic_max: 25000\nlimits:\n  max_rows: 10\n")
    cfg = load_config(str(path))
    assert cfg["summary"]["heuristic_max"] == 25000
    assert cfg["summary"]["heuristic_min"] == 100
    assert cfg["limits"]["max_rows"] == 10
    assert len(cfg["policy"]["tiers"]) == 3


def test_load_config_missing_file_uses_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg == get_default_config()


def test_shipped_config_matches_defaults():
    cfg = load_config(str(SHIPPED_CONFIG))
    assert [t["name"] for t in cfg["policy"]["tiers"]] == ["Tier 1", "Tier 2", "Tier 3"]
    assert cfg["policy"]["tiers"][2]["max"] is None
    assert cfg["extraction"]["header_fuzzy_threshold"] == 92


def test_load_config_rejects_invalid_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("policy: [unclosed\n")
    with pytest.raises(ValueError, match="not valid YAML"):
        load_config(str(path))


def test_load_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        load_config(str(path))
