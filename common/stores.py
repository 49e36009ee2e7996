import csv
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from common.config import STORE_CSV_CANDIDATES
from common.job_schema import StoreInfo

logger = logging.getLogger(__name__)

SAMPLE_STORES = {
    "RP00001": StoreInfo(store_name="Sample Store 1", area_code="A001"),
    "RP00002": StoreInfo(store_name="Sample Store 2", area_code="A002"),
}


class StoreLookup:
    """Read-only store master data, keyed by store id."""

    def __init__(self, stores: Optional[Mapping[str, StoreInfo]] = None):
        self._stores: Dict[str, StoreInfo] = dict(stores or {})

    def __len__(self) -> int:
        return len(self._stores)

    def exists(self, store_id: str) -> bool:
        return store_id in self._stores

    def get(self, store_id: str) -> Optional[StoreInfo]:
        return self._stores.get(store_id)

    def sample_ids(self, n: int = 3) -> List[str]:
        return list(self._stores)[:n]


def read_store_csv(path: Path) -> Dict[str, StoreInfo]:
    """Parses a StoreID/StoreName/AreaCode CSV. Rows without a StoreID are skipped."""
    stores = {}
    with open(path, newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            store_id = (row.get("StoreID") or "").strip()
            if not store_id:
                continue
            stores[store_id] = StoreInfo(
                store_name=row.get("StoreName") or "",
                area_code=row.get("AreaCode") or "",
            )
    return stores


def load_store_lookup(paths: Optional[Iterable[Path]] = None) -> StoreLookup:
    """
    Loads store master data from the first CSV that exists.
    Missing or unreadable data falls back to a small sample set so the
    service can still start.
    """
    candidates = list(paths) if paths is not None else STORE_CSV_CANDIDATES
    csv_path = next((p for p in candidates if Path(p).exists()), None)

    if csv_path is None:
        logger.warning("StoreMasterAssignment.csv not found, using sample store data")
        return StoreLookup(SAMPLE_STORES)

    logger.info("Loading store data from %s", csv_path)
    try:
        stores = read_store_csv(Path(csv_path))
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        logger.error("Error parsing %s: %s, using sample store data", csv_path, e)
        return StoreLookup(SAMPLE_STORES)

    lookup = StoreLookup(stores)
    logger.info("Loaded %d stores", len(lookup))
    for store_id in lookup.sample_ids():
        info = lookup.get(store_id)
        logger.debug("  %s: %s (%s)", store_id, info.store_name, info.area_code)
    return lookup
