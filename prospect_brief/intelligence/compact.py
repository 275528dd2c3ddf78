"""
Compaction of raw tool payloads into a bounded, sales-relevant summary.

Every compactor takes a raw tool result (any shape, possibly an error
envelope), coalesces the fields it knows about and returns a small plain
structure with explicit top-N caps. Error payloads pass through untouched.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..core.config import CompactionConfig
from .coalesce import (
    as_number,
    coalesce,
    dig,
    find_list,
    first_list,
    first_present,
    head,
    is_number,
    looks_like_hostname_noise,
    normalize_vendor_name,
    pick_array,
    to_iso_date_from_mmddyy,
    to_label,
)
from .envelope import compactor, is_error
from .models import RawPayloadBundle, TechnologyRow

RECENT_ADOPTION_CUTOFF = "2024-01-01"
RECENT_ADOPTIONS_CAP = 10


def _flatten_technologies(payload: Any) -> List[Dict[str, Any]]:
    """Flatten ``technologies`` category groups into product rows."""
    rows: List[Dict[str, Any]] = []
    for group in first_list(payload, "technologies", ("data", "technologies")):
        if not isinstance(group, Mapping):
            continue
        category = first_present(group, "category", "name")
        products = group.get("products")
        if not isinstance(products, list):
            continue
        for product in products:
            if not isinstance(product, Mapping):
                continue
            rows.append(
                {
                    "productName": first_present(product, "name", "productName"),
                    "vendorName": coalesce(product.get("vendorName"), category),
                    "intensity": coalesce(first_present(product, "intensity", "usageLevel"), 1),
                    "firstVerifiedDate": product.get("firstVerifiedDate"),
                    "lastVerifiedDate": product.get("lastVerifiedDate"),
                    "productAttributes": coalesce(product.get("productAttributes"), []),
                    "productLocations": coalesce(product.get("productLocations"), 0),
                }
            )
    return rows


@compactor
def compact_firmographic(f: Any) -> Dict[str, Any]:
    city = coalesce(dig(f, "location", "city"), dig(f, "headquarters", "city"))
    country = coalesce(dig(f, "location", "country"), dig(f, "headquarters", "country"))
    hq = ", ".join(str(part) for part in (city, country) if part)

    last_updated = dig(f, "metadata", "lastUpdated")

    return {
        "name": first_present(f, "companyName", "name"),
        "domain": first_present(f, "domain", "website", "websiteUrl"),
        "industry": coalesce(dig(f, "industryCodes", "naics", "name"), first_present(f, "industry")),
        "hq": hq or None,
        "employees": first_present(f, "employeeCount", "employees"),
        "revenue_usd": first_present(f, "revenue", "annualRevenue"),
        "it_spend_usd": first_present(f, "itSpend", "itSpendUsd"),
        "data_freshness": last_updated[:10] if isinstance(last_updated, str) else None,
        "confidence": dig(f, "metadata", "confidence"),
    }


@compactor
def compact_technographic(t: Any, top_n: int = 15) -> List[Dict[str, Any]]:
    """
    Merge product rows by (product, vendor) and rank by summed intensity.

    Rows come from a direct product list when present, otherwise from the
    flattened ``technologies`` groups.
    """
    products = find_list(
        t,
        "products",
        ("data", "products"),
        "productList",
        ("data", "productList"),
    )
    if products is None:
        products = _flatten_technologies(t)

    merged: Dict[tuple, TechnologyRow] = {}
    for product in products:
        if not isinstance(product, Mapping):
            continue
        row = TechnologyRow.from_product(product)
        merged[row.key] = merged[row.key].merge(row) if row.key in merged else row

    ranked = sorted(merged.values(), key=lambda r: r.intensity, reverse=True)
    return [row.to_dict() for row in ranked[:top_n]]


@compactor
def compact_cloud_spend(
    c: Any,
    per_service_top_n: int = 5,
    min_monthly_spend: float = 1000,
    recent_cutoff: str = RECENT_ADOPTION_CUTOFF,
    recent_cap: int = RECENT_ADOPTIONS_CAP,
) -> Dict[str, Any]:
    services = first_list(c, "technologyServices", "services", "cloudServices")
    rows: List[Dict[str, Any]] = []

    for service in services:
        if not isinstance(service, Mapping):
            continue
        service_name = first_present(service, "serviceName", "name")
        vendors = first_list(service, "vendors", "providers")

        service_rows = []
        for vendor in vendors:
            vendor_name = vendor.get("vendorName") if isinstance(vendor, Mapping) else None
            if not isinstance(vendor_name, str) or looks_like_hostname_noise(vendor_name):
                continue
            spend = vendor.get("estimatedMonthlySpend")
            row = {
                "service": service_name,
                "vendor": normalize_vendor_name(vendor_name),
                "monthly_spend_usd": spend if is_number(spend) else None,
                "first_seen": to_iso_date_from_mmddyy(vendor.get("firstSeen")),
            }
            if (row["monthly_spend_usd"] or 0) >= min_monthly_spend:
                service_rows.append(row)

        service_rows.sort(key=lambda r: r["monthly_spend_usd"] or 0, reverse=True)
        rows.extend(service_rows[:per_service_top_n])

    recent = [
        {"vendor": r["vendor"], "first_seen": r["first_seen"]}
        for r in rows
        if isinstance(r["first_seen"], str) and r["first_seen"] >= recent_cutoff
    ]
    return {"top_spend": rows, "recent_adoptions": recent[:recent_cap]}


@compactor
def compact_fai(data: Any, top_n: int = 4) -> List[Dict[str, Any]]:
    """Functional-area rows ranked by headcount."""
    rows = []
    for d in pick_array(data, ["departments", "teams", "functionalAreas"]):
        name = first_present(d, "name", "departmentName", "functionName")
        if not name:
            continue
        technologies = d.get("technologies")
        rows.append(
            {
                "name": name,
                "employees": first_present(d, "employeeCount", "headcount"),
                "spending_level": first_present(d, "spendingLevel", "spendLevel"),
                "tech_count": (
                    len(technologies)
                    if isinstance(technologies, list)
                    else d.get("technologyCount")
                ),
                "top_tech": head(technologies, 3),
            }
        )

    rows.sort(key=lambda r: as_number(r["employees"]), reverse=True)
    return rows[:top_n]


@compactor
def compact_spend(data: Any, top_n: int = 5, default_category: str = "Security") -> Dict[str, Any]:
    rows = []
    for b in pick_array(data, ["breakdown", "categories", "categoryBreakdown"]):
        subcategory = first_present(b, "subcategory", "category", "name")
        if not subcategory:
            continue
        rows.append(
            {
                "subcategory": subcategory,
                "spend_usd": first_present(b, "spend", "totalSpend", "amount"),
                "products": head(b.get("products"), 3),
            }
        )

    category = first_present(data, "category", "spendCategory")
    return {
        "category": default_category if category is None else category,
        "total_spend_usd": first_present(data, "totalSpend", "total_spend", "spend"),
        "yoy_growth": first_present(data, "yearOverYearGrowth", "yoyGrowth", "growth"),
        "breakdown": rows[:top_n],
    }


@compactor
def compact_contracts(data: Any, top_n: int = 5) -> Dict[str, Any]:
    contracts = pick_array(data, ["contracts", "items", "agreements"])
    rows = []
    for c in contracts:
        vendor = first_present(c, "vendorName", "vendor", "provider")
        if not vendor:
            continue
        rows.append(
            {
                "vendor": vendor,
                "value_usd": first_present(c, "totalValue", "value", "amount"),
                "start_date": first_present(c, "startDate", "start"),
                "end_date": first_present(c, "endDate", "end"),
            }
        )

    count = first_present(data, "count")
    return {
        "contracts_count": len(contracts) if count is None else count,
        "total_value_usd": first_present(data, "totalValue", "totalContractValue", "total"),
        "recent_contracts": rows[:top_n],
    }


@compactor
def compact_product_list(data: Any, top_n: int = 15) -> List[str]:
    """Catalog listing reduced to labels."""
    if isinstance(data, list):
        items = data
    else:
        items = pick_array(data, ["categories", "vendors", "attributes", "topics", "items"])
    labels = [to_label(item) for item in items]
    return [label for label in labels if label][:top_n]


@compactor
def compact_product_info(data: Any) -> Dict[str, Any]:
    return {
        "name": first_present(data, "name", "productName", "title"),
        "category": first_present(data, "category", "productCategory"),
        "pricing": first_present(data, "pricing", "price"),
        "features": head(dig(data, "features"), 3),
    }


@compactor
def compact_product_reviews(data: Any) -> Dict[str, Any]:
    return {
        "rating": first_present(data, "rating", "avgRating", "averageRating"),
        "review_count": first_present(data, "reviewCount", "reviewsCount", "count"),
        "pros": head(dig(data, "pros"), 2),
        "cons": head(dig(data, "cons"), 2),
    }


def build_compact_payload(
    bundle: RawPayloadBundle, limits: Optional[CompactionConfig] = None
) -> Dict[str, Any]:
    """
    Compact all twelve raw payloads and group them by sales theme.

    Pure composition: an error from any compactor is placed as-is where its
    section would go.
    """
    limits = limits or CompactionConfig()
    list_n = limits.product_list_top_n

    cloud = compact_cloud_spend(
        bundle.cloud_spend,
        limits.cloud_per_service_top_n,
        limits.cloud_min_monthly_spend,
        limits.recent_adoption_cutoff,
        limits.recent_adoptions_cap,
    )
    cloud_failed = is_error(cloud)

    return {
        "company": compact_firmographic(bundle.firmographic),
        "tech_highlights": {
            "languages_tools": compact_technographic(bundle.technographic, limits.tech_top_n),
            "cloud_stack_top_spend": cloud if cloud_failed else cloud["top_spend"],
            "recent_adoptions": cloud if cloud_failed else cloud["recent_adoptions"],
        },
        "sales_signals": {
            "icp_departments": compact_fai(bundle.fai, limits.fai_top_n),
            "security_spend": compact_spend(
                bundle.security_spend, limits.spend_top_n, limits.spend_category
            ),
            "contracts": compact_contracts(bundle.contracts, limits.contracts_top_n),
        },
        "product_signals": {
            "categories": compact_product_list(bundle.product_categories, list_n),
            "vendors": compact_product_list(bundle.product_vendors, list_n),
            "attributes": compact_product_list(bundle.product_attributes, list_n),
            "intent_topics": compact_product_list(bundle.intent_topics, list_n),
            "product_info": compact_product_info(bundle.product_info),
            "product_reviews": compact_product_reviews(bundle.product_reviews),
        },
    }
