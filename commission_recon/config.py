"""
Configuration loading.

Defaults live in code; an optional YAML file is deep-merged over them so a
deployment only has to state what it changes.
"""

import copy
import os
from typing import Dict, Optional

import yaml
from loguru import logger

DEFAULT_CONFIG_PATH = os.path.join("config", "commission_policy.yaml")

_DEFAULTS = {
    "policy": {
        "incentive_rate": 0.03,
        "tiers": [
            {"name": "Tier 1", "min": 0, "max": 9999.99,
             "repeat_rate": 0.02, "new_rate": 0.03, "incentive_rate": 0.03, "bonus": 0},
            {"name": "Tier 2", "min": 10000, "max": 49999.99,
             "repeat_rate": 0.01, "new_rate": 0.02, "incentive_rate": 0.03, "bonus": 100},
            {"name": "Tier 3", "min": 50000, "max": None,
             "repeat_rate": 0.005, "new_rate": 0.015, "incentive_rate": 0.03, "bonus": 300},
        ],
    },
    "extraction": {
        "header_fuzzy_threshold": 92,
    },
    "summary": {
        # tuned on one payer's layout; set per deployment
        "heuristic_min": 100,
        "heuristic_max": 10000,
    },
    "limits": {
        "max_rows": 50000,
        "max_file_size_mb": 50,
    },
    "sheets": {
        "detail_names": ["detail"],
        "summary_names": ["summary"],
    },
}


def get_default_config() -> Dict:
    return copy.deepcopy(_DEFAULTS)


def merge_dict(base: Dict, override: Optional[Dict]) -> None:
    """Recursively merge override into base (in place); lists are replaced whole"""
    for k, v in (override or {}).items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            merge_dict(base[k], v)
        else:
            base[k] = v


def load_config(path: Optional[str] = DEFAULT_CONFIG_PATH) -> Dict:
    base = get_default_config()
    if path and os.path.exists(path):
        with open(path, "r") as fh:
            try:
                cfg = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Config file {path} is not valid YAML: {e}") from e
        if not isinstance(cfg, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level")
        merge_dict(base, cfg)
        logger.info(f"Loaded config: {path}")
        return base
    if path:
        logger.warning(f"Config file {path} not found. Using defaults.")
    return base
