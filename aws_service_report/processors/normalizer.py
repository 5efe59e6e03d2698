"""Normalization of raw source documents into the canonical report model."""

from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .base import (BaseProcessor, ProcessingContext, ProcessingError,
                   ProcessingValidationError)
from .models import CanonicalModel, Region, Service, SourceMetadata

# Ordered spellings tried for each logical field; the first non-empty value
# wins. Keep every variant here so precedence stays in one place.
FIELD_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "region_code": ("code", "regionCode", "RegionCode", "region_code"),
    "region_name": ("name", "regionName", "RegionName", "region_name"),
    "availability_zones": (
        "availabilityZones",
        "AvailabilityZones",
        "availability_zones",
        "azCount",
    ),
    "launch_date": ("launchDate", "LaunchDate", "launch_date"),
    "blog_url": ("blogUrl", "BlogUrl", "blog_url", "announcementUrl"),
    "service_code": ("code", "serviceCode", "ServiceCode", "service_code"),
    "service_name": ("name", "serviceName", "ServiceName", "service_name"),
    "schema_version": ("schemaVersion", "version", "schema_version"),
    "timestamp": ("timestamp", "generatedAt", "generated_at"),
    "source": ("source",),
}

# Where each top-level collection may live, tried in order.
CONTAINER_PATHS: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    "regions": (("regions", "regions"), ("regions",)),
    "services": (("services", "services"), ("services",)),
    "servicesByRegion": (
        ("servicesByRegion", "byRegion"),
        ("servicesByRegion", "servicesByRegion"),
        ("servicesByRegion",),
    ),
}


class NormalizationError(ProcessingError):
    """Raised when mandatory top-level containers are missing."""

    pass


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def resolve_field(record: Mapping[str, Any], logical_name: str, default: Any = "") -> Any:
    """Return the first non-empty value among the spellings of ``logical_name``.

    Args:
        record: Raw JSON object
        logical_name: Key of ``FIELD_CANDIDATES``
        default: Returned when no candidate holds a value

    Raises:
        KeyError: If ``logical_name`` is not a known logical field
    """
    if not isinstance(record, Mapping):
        return default
    for candidate in FIELD_CANDIDATES[logical_name]:
        value = record.get(candidate)
        if not _is_empty(value):
            return value
    return default


def resolve_container(document: Mapping[str, Any], container: str) -> Any:
    """Resolve a top-level collection that may be wrapped one level deeper.

    Returns:
        The first path that resolves to a non-mapping value (or to a mapping
        for ``servicesByRegion``), or None if none resolves
    """
    if not isinstance(document, Mapping):
        return None

    wants_mapping = container == "servicesByRegion"
    for path in CONTAINER_PATHS[container]:
        value: Any = document
        for part in path:
            if not isinstance(value, Mapping) or part not in value:
                value = None
                break
            value = value[part]
        if value is None:
            continue
        if wants_mapping:
            # The outer object is only the answer if it is not a wrapper.
            if isinstance(value, Mapping) and not (
                len(path) == 1 and _looks_like_wrapper(value)
            ):
                return value
        elif isinstance(value, list):
            return value
    return None


def _looks_like_wrapper(value: Mapping[str, Any]) -> bool:
    return any(key in value for key in ("byRegion", "servicesByRegion"))


def _coerce_az_count(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, tuple)):
        return len(value)
    if isinstance(value, (int, float, str)):
        try:
            return max(int(float(value)), 0)
        except (ValueError, OverflowError):
            # Non-finite or non-numeric
            return 0
    return 0


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def build_service_name_lookup(records: Iterable[Any]) -> Dict[str, str]:
    """Map service code to name from the secondary document (exact code match)."""
    lookup: Dict[str, str] = {}
    for record in records or []:
        code = _text(resolve_field(record, "service_code"))
        name = _text(resolve_field(record, "service_name"))
        if code and name:
            lookup.setdefault(code, name)
    return lookup


def flatten_coverage(raw_mapping: Optional[Mapping[str, Any]]) -> Optional[Dict[str, FrozenSet[str]]]:
    """Normalize region entries that are lists or ``{"services": [...]}`` objects."""
    if raw_mapping is None:
        return None

    coverage: Dict[str, FrozenSet[str]] = {}
    for region_code, entry in raw_mapping.items():
        if isinstance(entry, Mapping):
            entry = entry.get("services")
        if not isinstance(entry, (list, tuple)):
            continue
        coverage[str(region_code)] = frozenset(
            _text(code) for code in entry if not _is_empty(code)
        )
    return coverage


class DataNormalizer(BaseProcessor):
    """Builds the canonical model from the primary and service-name documents."""

    def __init__(self, context: Optional[ProcessingContext] = None):
        super().__init__(context)
        self.stats: Dict[str, int] = {}

    def validate_input(self, input_data: Any) -> bool:
        """Check the primary document is a JSON object.

        Raises:
            ProcessingValidationError: If it is not
        """
        if not isinstance(input_data, Mapping):
            raise ProcessingValidationError(
                "Source document must be a JSON object, "
                f"got {type(input_data).__name__}"
            )
        return True

    def process(
        self,
        input_data: Mapping[str, Any],
        service_names: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> CanonicalModel:
        """Normalize the primary document.

        Args:
            input_data: Parsed primary source document
            service_names: Records from the secondary service-name document

        Returns:
            CanonicalModel for rendering

        Raises:
            NormalizationError: If the regions or services container is absent
        """
        self.validate_input(input_data)

        raw_regions = resolve_container(input_data, "regions")
        raw_services = resolve_container(input_data, "services")
        missing = [
            name
            for name, value in (("regions", raw_regions), ("services", raw_services))
            if value is None
        ]
        if missing:
            raise NormalizationError(
                "Invalid data structure: missing required fields "
                f"({', '.join(missing)})",
                missing=missing,
            )

        name_lookup = build_service_name_lookup(service_names or [])
        metadata = self._normalize_metadata(input_data.get("metadata"))
        regions = self._normalize_regions(raw_regions)
        services = self._normalize_services(raw_services, name_lookup)
        coverage = flatten_coverage(resolve_container(input_data, "servicesByRegion"))

        model = CanonicalModel(
            metadata=metadata, regions=regions, services=services, coverage=coverage
        )

        self.stats = {
            "regions": model.region_count,
            "services": model.service_count,
            "coverage_regions": len(coverage) if coverage is not None else 0,
            "names_from_lookup": sum(
                1 for service in services if service.code in name_lookup
            ),
        }
        self.logger.info("Normalized source data", **self.stats)

        if coverage is None:
            self.logger.warning("Source has no service-by-region mapping")

        unknown = model.unknown_service_codes()
        if unknown:
            self.logger.warning(
                "Coverage mapping references unknown service codes",
                count=len(unknown),
                sample=", ".join(unknown[:10]),
            )

        self._check_schema_version(metadata)
        return model

    def _normalize_metadata(self, raw: Any) -> SourceMetadata:
        raw = raw if isinstance(raw, Mapping) else {}
        return SourceMetadata(
            schema_version=_text(resolve_field(raw, "schema_version")) or None,
            timestamp=_text(resolve_field(raw, "timestamp")) or None,
            source=_text(resolve_field(raw, "source")) or None,
        )

    def _normalize_regions(self, raw_regions: List[Any]) -> Tuple[Region, ...]:
        regions = []
        for raw in raw_regions:
            if isinstance(raw, str):
                regions.append(Region(code=raw.strip()))
                continue
            regions.append(
                Region(
                    code=_text(resolve_field(raw, "region_code")),
                    name=_text(resolve_field(raw, "region_name")),
                    availability_zone_count=_coerce_az_count(
                        resolve_field(raw, "availability_zones", 0)
                    ),
                    launch_date=_text(resolve_field(raw, "launch_date")) or None,
                    blog_url=_text(resolve_field(raw, "blog_url")) or None,
                )
            )
        return tuple(regions)

    def _normalize_services(
        self, raw_services: List[Any], name_lookup: Dict[str, str]
    ) -> Tuple[Service, ...]:
        services = []
        for raw in raw_services:
            if isinstance(raw, str):
                code, name = raw.strip(), ""
            else:
                code = _text(resolve_field(raw, "service_code"))
                name = _text(resolve_field(raw, "service_name"))
            name = name or name_lookup.get(code) or code
            services.append(Service(code=code, name=name))
        return tuple(services)

    def _check_schema_version(self, metadata: SourceMetadata):
        config = self.context.config
        expected = config.expected_schema_version if config else None
        if not expected or not metadata.schema_version:
            return
        if metadata.schema_version != expected:
            message = (
                f"Unexpected source schema version {metadata.schema_version} "
                f"(expected {expected})"
            )
            self.logger.warning(message)
            self.context.add_warning(message)
