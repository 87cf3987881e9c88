"""
Overview metrics writer.

Each home keeps an `overviewMetrics` record with up to three categories:

    {
        "antipsychotics": {"percentage": 12, "change": -3, "residents": ["Alice", "Bob"]},
        "worsened":       {...},
        "improved":       {...}
    }

An update replaces only the categories it supplies; the rest of the stored
record is left exactly as it was. The read and the write are separate store
calls with no lock between them, so two concurrent updates for the same home
race and the last write wins.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
import logging

from models.document_store import DocumentStore
from utils.shared import parse_int, parse_residents

logger = logging.getLogger(__name__)

METRIC_CATEGORIES = ("antipsychotics", "worsened", "improved")

# Operational home code -> storage node name. Unlisted codes map to themselves.
HOME_ALIASES: Dict[str, str] = {
    "ONCB": "oneill",
    "MCB": "millCreek",
}


def resolve_alt_name(home: str) -> str:
    return HOME_ALIASES.get(home, home)


def metrics_path(home: str) -> str:
    return f"/{resolve_alt_name(home)}/overviewMetrics"


@dataclass
class MetricCategoryInput:
    """Raw form text for one category; every field may be missing."""
    percentage: Optional[str] = None
    change: Optional[str] = None
    residents: Optional[str] = None

    @property
    def is_supplied(self) -> bool:
        return bool(self.percentage)

    def to_record(self) -> Dict[str, Any]:
        return {
            "percentage": parse_int(self.percentage),
            "change": parse_int(self.change),
            "residents": parse_residents(self.residents),
        }


def build_metrics_update(inputs: Mapping[str, MetricCategoryInput]) -> Dict[str, Dict[str, Any]]:
    """Records for the supplied categories only, in canonical category order."""
    update = {}
    for category in METRIC_CATEGORIES:
        entry = inputs.get(category)
        if entry is not None and entry.is_supplied:
            update[category] = entry.to_record()
    return update


def merge_overview_metrics(store: DocumentStore, home: str, update: Mapping[str, Any]) -> Dict[str, Any]:
    """Summary: Overlay `update` onto the stored metrics and write the result.
    One read and one write; no locking (last writer wins).
    Returns: the merged record as written. Raises: StoreError"""
    path = metrics_path(home)
    existing = store.get(path)
    if not isinstance(existing, dict):
        existing = {}
    merged = {**existing, **update}
    store.set(path, merged)
    logger.info(f"Saved overview metrics for {home} at {path}: {sorted(update)}")
    return merged


def save_metrics(store: DocumentStore, home: str, inputs: Mapping[str, MetricCategoryInput]) -> Dict[str, Any]:
    return merge_overview_metrics(store, home, build_metrics_update(inputs))


def read_overview_metrics(store: DocumentStore, home: str) -> Dict[str, Any]:
    existing = store.get(metrics_path(home))
    return existing if isinstance(existing, dict) else {}
