"""
Centralized loading of prompt templates and static catalogs.
Each YAML file is read once and cached for the lifetime of the process.
"""

import yaml
from pathlib import Path
from functools import lru_cache

RESOURCES_DIR = Path(__file__).parent.parent / "resources"


def _load_yaml(name: str) -> dict:
    with open(RESOURCES_DIR / name, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


@lru_cache(maxsize=1)
def load_prompts() -> dict:
    """
    Loads prompt templates, fallback payloads and canned chat texts.

    Returns:
        Dictionary keyed by feature (prescription, scan, otc, chat, ...)

    Raises:
        FileNotFoundError: If prompts.yaml is missing from the package
    """
    return _load_yaml("prompts.yaml")


@lru_cache(maxsize=1)
def load_catalog() -> dict:
    """Loads the static catalogs (OTC lists, sample centers, quick replies)."""
    return _load_yaml("catalog.yaml")
