"""Request-scoped data models for domain resolution and compaction."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .coalesce import as_number, first_present


class ResolutionStrategy(str, Enum):
    """Which resolver step produced the domain."""

    DIRECT = "direct"
    DIRECTORY = "directory"
    WEB_SEARCH = "web_search"
    GUESS = "guess"
    UNRESOLVED = "unresolved"


@dataclass
class CompanyCandidate:
    """One row of a company-directory search."""

    company_name: Optional[str] = None
    domain: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Any) -> "CompanyCandidate":
        if not isinstance(row, Mapping):
            return cls()
        name = first_present(row, "companyName", "name")
        domain = first_present(row, "domain", "website")
        return cls(
            company_name=name if isinstance(name, str) else None,
            domain=domain if isinstance(domain, str) else None,
        )


@dataclass
class ResolvedDomain:
    """Outcome of resolving a free-text query to a domain."""

    domain: str
    name: Optional[str] = None
    strategy: ResolutionStrategy = ResolutionStrategy.UNRESOLVED

    @property
    def resolved(self) -> bool:
        return bool(self.domain)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"domain": self.domain, "strategy": self.strategy.value}
        if self.name:
            payload["name"] = self.name
        return payload


@dataclass
class TechnologyRow:
    """
    A product/vendor usage row, merged by its (product, vendor) identity.

    ``merge`` sums intensity and locations, widens the verified date range and
    unions attributes up to ``MAX_ATTRIBUTES``.
    """

    MAX_ATTRIBUTES = 3

    product: Optional[str]
    vendor: Optional[str]
    intensity: float = 0
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    attributes: List[Any] = field(default_factory=list)
    locations: float = 0

    @property
    def key(self) -> tuple:
        return (self.product, self.vendor)

    @classmethod
    def from_product(cls, product: Mapping[str, Any]) -> "TechnologyRow":
        attributes = product.get("productAttributes")
        return cls(
            product=product.get("productName"),
            vendor=product.get("vendorName"),
            intensity=as_number(product.get("intensity")),
            first_seen=product.get("firstVerifiedDate"),
            last_seen=product.get("lastVerifiedDate"),
            # Distinct values, capped like merged rows
            attributes=_union([], attributes if isinstance(attributes, list) else []),
            locations=as_number(product.get("productLocations")),
        )

    def merge(self, other: "TechnologyRow") -> "TechnologyRow":
        return TechnologyRow(
            product=self.product,
            vendor=self.vendor,
            intensity=self.intensity + other.intensity,
            first_seen=_pick(min, self.first_seen, other.first_seen),
            last_seen=_pick(max, self.last_seen, other.last_seen),
            attributes=_union(self.attributes, other.attributes),
            locations=self.locations + other.locations,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product": self.product,
            "vendor": self.vendor,
            "intensity": self.intensity,
            "first_seen": self.first_seen,
            "last_seen": self.last_seen,
            "attributes": list(self.attributes),
            "locations": self.locations,
        }


def _pick(choose, a: Optional[str], b: Optional[str]) -> Optional[str]:
    present = [d for d in (a, b) if d]
    if not present:
        return None
    try:
        return choose(present)
    except TypeError:
        return present[0]


def _union(current: List[Any], extra: List[Any]) -> List[Any]:
    merged = list(current)
    for item in extra:
        if len(merged) >= TechnologyRow.MAX_ATTRIBUTES:
            break
        if item not in merged:
            merged.append(item)
    return merged


@dataclass
class RawPayloadBundle:
    """The twelve raw tool payloads that feed one compact payload."""

    firmographic: Any = None
    technographic: Any = None
    cloud_spend: Any = None
    fai: Any = None
    security_spend: Any = None
    contracts: Any = None
    product_categories: Any = None
    product_vendors: Any = None
    product_attributes: Any = None
    intent_topics: Any = None
    product_info: Any = None
    product_reviews: Any = None

    @classmethod
    def filled(cls, value: Any) -> "RawPayloadBundle":
        """Bundle with the same payload in every slot."""
        return cls(**{f.name: value for f in fields(cls)})


@dataclass
class CompanyAnalysis:
    """Result of one end-to-end company analysis."""

    query: str
    company_domain: str
    compact: Dict[str, Any]
    company_name: Optional[str] = None
    resolution_strategy: ResolutionStrategy = ResolutionStrategy.DIRECT

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "query": self.query,
            "company_domain": self.company_domain,
            "resolution_strategy": self.resolution_strategy.value,
            "compact": self.compact,
        }
        if self.company_name:
            payload["company_name"] = self.company_name
        return payload
