"""Canonical in-memory model built once per report run."""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Region:
    """An AWS region. Identity is ``code``."""

    code: str
    name: str = ""
    availability_zone_count: int = 0
    launch_date: Optional[str] = None
    blog_url: Optional[str] = None


@dataclass(frozen=True)
class Service:
    """An AWS service. Identity is ``code``; ``name`` falls back to the code."""

    code: str
    name: str = ""

    @property
    def display_name(self) -> str:
        return self.name or self.code

    @property
    def sort_key(self) -> Tuple[str, str]:
        """Case-insensitive name first, code breaks ties."""
        return (self.display_name.casefold(), self.code)


@dataclass(frozen=True)
class SourceMetadata:
    """Metadata block of the primary source document."""

    schema_version: Optional[str] = None
    timestamp: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class CanonicalModel:
    """Normalized regions, services and coverage mapping.

    ``coverage`` is None when the source had no service-by-region mapping at
    all; rendering then shows a "not available" state.
    """

    metadata: SourceMetadata
    regions: Tuple[Region, ...]
    services: Tuple[Service, ...]
    coverage: Optional[Mapping[str, FrozenSet[str]]] = None
    _region_counts: Dict[str, int] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        # Only listed regions count, so a percentage never exceeds 100.
        counts: Dict[str, int] = {}
        for region_code in dict.fromkeys(region.code for region in self.regions):
            for code in self.services_in_region(region_code):
                counts[code] = counts.get(code, 0) + 1
        object.__setattr__(self, "_region_counts", counts)

    @property
    def has_coverage(self) -> bool:
        return bool(self.coverage)

    @property
    def region_count(self) -> int:
        return len(self.regions)

    @property
    def service_count(self) -> int:
        return len(self.services)

    @property
    def mapping_entry_count(self) -> Optional[int]:
        """Total region/service pairs, or None if the mapping is absent."""
        if self.coverage is None:
            return None
        return sum(len(codes) for codes in self.coverage.values())

    def services_in_region(self, region_code: str) -> FrozenSet[str]:
        return (self.coverage or {}).get(region_code, frozenset())

    def service_count_for_region(self, region_code: str) -> int:
        return len(self.services_in_region(region_code))

    def region_count_for_service(self, service_code: str) -> int:
        return self._region_counts.get(service_code, 0)

    def unknown_service_codes(self) -> Tuple[str, ...]:
        """Codes used in the coverage mapping that match no known service."""
        known = {service.code for service in self.services}
        referenced = set()
        for service_codes in (self.coverage or {}).values():
            referenced.update(service_codes)
        return tuple(sorted(referenced - known))
