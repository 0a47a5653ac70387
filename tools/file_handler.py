"""
File Handler Tool — loads the search-space config and summarizes runs.
"""

import os

import yaml

from config.settings import ConfigurationError
from models.search import SearchConfig


def load_search_config(yaml_path: str) -> SearchConfig:
    """
    Load search terms and locations from a YAML file.

    Args:
        yaml_path: Path to a file with `search_terms:` and `locations:` lists.

    Returns:
        SearchConfig; a missing file or missing keys fall back to the defaults.

    Raises:
        ConfigurationError: if the file is not a YAML mapping.
    """
    if not yaml_path or not os.path.exists(yaml_path):
        return SearchConfig()

    try:
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid search config {yaml_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid search config {yaml_path}: expected a mapping")

    return SearchConfig(
        search_terms=_as_list(data.get("search_terms")),
        locations=_as_list(data.get("locations")),
    )


def _as_list(value) -> list:
    # A single scalar entry is one item, not a sequence of characters
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def generate_summary(batches: list[dict]) -> str:
    """
    Generate a human-readable summary of a multi-batch run.

    Args:
        batches: Batch responses in the order they were returned.

    Returns:
        Formatted summary string.
    """
    if not batches:
        return "No batches were run."

    found = sum(batch.get("total_found", 0) for batch in batches)
    inserted = sum(batch.get("inserted", 0) for batch in batches)
    skipped = sum(batch.get("skipped", 0) for batch in batches)

    lines = [
        f"{'=' * 50}",
        f"  JOB SCRAPING SUMMARY",
        f"{'=' * 50}",
        f"  Batches run:      {len(batches)}",
        f"  Jobs found:       {found}",
        f"  New jobs added:   {inserted}",
        f"  Duplicates:       {skipped}",
        f"",
        f"  By Batch:",
    ]
    for batch in batches:
        lines.append(f"    - {batch.get('progress', '')}: {batch.get('inserted', 0)} new / {batch.get('total_found', 0)} found")
    lines.append(f"{'=' * 50}")

    return "\n".join(lines)
