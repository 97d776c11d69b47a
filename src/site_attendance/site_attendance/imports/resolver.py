from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Dict, Generic, Hashable, Iterable, List, Mapping, Optional, Tuple, TypeVar, Union

from ..core.constants import DEFAULT_EXTERNAL_MARKER, DEFAULT_SUGGESTION_LIMIT, EXTERNAL_SENTINELS, SKIP_SENTINEL
from ..masters.model import Contractor, Worker
from ..naming.fuzzy import suggest
from ..naming.normalizer import NameNormalizer, default_normalizer


@dataclass(frozen=True)
class Resolved:
    contractor_id: str


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class External:
    pass


@dataclass(frozen=True)
class Unresolved:
    label: str
    suggestions: Tuple[str, ...] = ()


Resolution = Union[Resolved, Skip, External, Unresolved]


class ContractorIndex:
    """Immutable snapshot: normalized contractor name -> contractor id.

    Built once per import run from the active contractors.
    """

    def __init__(self, by_key: Mapping[str, str], display_names: Iterable[str] = ()):
        self._by_key = MappingProxyType(dict(by_key))
        self._display_names = tuple(display_names)

    @classmethod
    def from_contractors(
        cls, contractors: Iterable[Contractor], *, normalizer: Optional[NameNormalizer] = None
    ) -> "ContractorIndex":
        normalizer = normalizer or default_normalizer
        by_key: Dict[str, str] = {}
        names: List[str] = []
        for contractor in contractors:
            display = normalizer.strip_legal_suffix(contractor.name)
            by_key.setdefault(normalizer.normalize(display), contractor.contractor_id)
            names.append(display)
        return cls(by_key, names)

    @property
    def display_names(self) -> Tuple[str, ...]:
        return self._display_names

    def lookup(self, key: str) -> Optional[str]:
        return self._by_key.get(key)

    def __len__(self) -> int:
        return len(self._by_key)


class WorkerIndex:
    """Immutable snapshot: (contractor id, normalized worker name) -> worker id."""

    def __init__(self, by_key: Mapping[Tuple[str, str], str]):
        self._by_key = MappingProxyType(dict(by_key))

    @classmethod
    def from_workers(cls, workers: Iterable[Worker], *, normalizer: Optional[NameNormalizer] = None) -> "WorkerIndex":
        normalizer = normalizer or default_normalizer
        by_key: Dict[Tuple[str, str], str] = {}
        for worker in workers:
            by_key.setdefault((worker.contractor_id, normalizer.normalize(worker.name)), worker.worker_id)
        return cls(by_key)

    def lookup(self, contractor_id: str, name: str, *, normalizer: Optional[NameNormalizer] = None) -> Optional[str]:
        normalizer = normalizer or default_normalizer
        return self._by_key.get((contractor_id, normalizer.normalize(name)))


def normalize_overrides(
    mappings: Optional[Mapping[str, str]], *, normalizer: Optional[NameNormalizer] = None
) -> Dict[str, str]:
    """Override map keyed by normalized source label."""
    normalizer = normalizer or default_normalizer
    result: Dict[str, str] = {}
    for source, target in (mappings or {}).items():
        key = normalizer.normalize_mapping_key(str(source))
        if key:
            result[key] = "" if target is None else str(target)
    return result


def _is_external_sentinel(value: str, marker: str) -> bool:
    folded = value.strip().casefold()
    return folded in EXTERNAL_SENTINELS or folded == marker.strip().casefold()


def resolve_contractor(
    label: str,
    overrides: Mapping[str, str],
    index: ContractorIndex,
    *,
    marker: str = DEFAULT_EXTERNAL_MARKER,
    normalizer: Optional[NameNormalizer] = None,
    suggestion_limit: int = DEFAULT_SUGGESTION_LIMIT,
) -> Resolution:
    """Resolve an import label to a contractor.

    `overrides` must already be keyed by normalized labels (see normalize_overrides).
    A mapped value of "skip" skips the row, an external sentinel (or the marker
    itself) routes it to the external path, anything else replaces the label.
    """
    normalizer = normalizer or default_normalizer
    effective = label or ""
    mapped = overrides.get(normalizer.normalize_mapping_key(effective))
    if mapped is not None:
        if mapped.strip().casefold() == SKIP_SENTINEL:
            return Skip()
        if _is_external_sentinel(mapped, marker):
            return External()
        effective = mapped

    contractor_id = index.lookup(normalizer.normalize_mapping_key(effective))
    if contractor_id:
        return Resolved(contractor_id)

    target = normalizer.normalize_contractor_label(effective)
    return Unresolved(
        label=effective,
        suggestions=tuple(suggest(target, index.display_names, suggestion_limit, normalizer=normalizer)),
    )


def resolve_import_row(
    raw_label: str,
    override_map: Optional[Mapping[str, str]],
    known_contractors: Union[ContractorIndex, Iterable[Contractor]],
    *,
    marker: str = DEFAULT_EXTERNAL_MARKER,
    normalizer: Optional[NameNormalizer] = None,
) -> Resolution:
    """One-shot resolution: raw override map and contractors in, resolution out."""
    normalizer = normalizer or default_normalizer
    index = (
        known_contractors
        if isinstance(known_contractors, ContractorIndex)
        else ContractorIndex.from_contractors(known_contractors, normalizer=normalizer)
    )
    overrides = normalize_overrides(override_map, normalizer=normalizer)
    return resolve_contractor(raw_label, overrides, index, marker=marker, normalizer=normalizer)


V = TypeVar("V")


class ImportDeduper(Generic[V]):
    """Collects import rows by natural key; a later row with the same key replaces the earlier one."""

    def __init__(self, normalizer: Optional[NameNormalizer] = None):
        self._normalizer = normalizer or default_normalizer
        self._items: Dict[Hashable, V] = {}
        self.replaced = 0

    def worker_key(self, entry_date: date, site_id: str, worker_id: str) -> Tuple:
        return (entry_date, site_id, worker_id)

    def external_key(self, entry_date: date, site_id: str, name: str) -> Tuple:
        return (entry_date, site_id, "external", self._normalizer.normalize(name))

    def pending_key(self, entry_date: date, site_id: str, contractor_id: str, name: str) -> Tuple:
        return (entry_date, site_id, contractor_id, self._normalizer.normalize(name))

    def add(self, key: Hashable, value: V) -> None:
        if key in self._items:
            # last wins, positioned at its latest occurrence
            del self._items[key]
            self.replaced += 1
        self._items[key] = value

    def values(self) -> List[V]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)
