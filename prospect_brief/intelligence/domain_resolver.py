"""
Company domain resolution (waterfall strategy).

0) Direct extraction when the query already looks like a URL or hostname.
1) Company-directory search, best candidate by a strict match precedence.
2) Web search for "<query> official website", hostnames scored against the
   query tokens.
3) Slug guess: "<alphanumerics>.com".

A failed remote call just falls through to the next step. An empty domain
at the end is the caller's unresolved case.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Iterable, List, Optional
from urllib.parse import urlsplit

import structlog
import tldextract

from ..utils.reliability import ToolClient, call_tool_with_retry
from .coalesce import first_list, first_present
from .envelope import is_error
from .models import CompanyCandidate, ResolutionStrategy, ResolvedDomain

logger = structlog.get_logger(__name__)

# -------------------- Config / Constants --------------------

BLOCKED_HOSTS = {
    "wikipedia.org", "linkedin.com", "crunchbase.com", "reddit.com", "facebook.com",
    "twitter.com", "x.com", "instagram.com", "youtube.com",
    "bloomberg.com", "pitchbook.com", "zoominfo.com",
}

# Exact "<token>.<tld>" matches, best first
TLD_SCORES = (("com", 100), ("io", 96), ("co", 94), ("ai", 92), ("net", 90), ("org", 88))
PREFIX_SCORE = 80
CONTAINS_SCORE = 60

MIN_TOKEN_LENGTH = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

# -------------------- URL / Domain helpers --------------------


@lru_cache(maxsize=1)
def _suffix_extractor() -> tldextract.TLDExtract:
    # Bundled public-suffix snapshot, no network fetch
    return tldextract.TLDExtract(suffix_list_urls=())


def normalize_domain(value: str, public_suffix: bool = False) -> str:
    """
    Reduce a hostname to its registrable domain.

    Keeps the last two labels, or three when the name looks like a
    country-code second-level domain (two-letter TLD under a label of at most
    three characters, e.g. ``co.uk``). This is a heuristic, not a public-suffix
    lookup; pass ``public_suffix=True`` for the real thing.
    """
    trimmed = (value or "").lower().strip()
    if trimmed.startswith("www."):
        trimmed = trimmed[4:]

    if public_suffix and trimmed:
        extracted = _suffix_extractor()(trimmed)
        registered = (
            getattr(extracted, "top_domain_under_public_suffix", None)
            or extracted.registered_domain
        )
        if registered:
            return registered.lower()

    parts = [p for p in trimmed.split(".") if p]
    if len(parts) <= 2:
        return trimmed
    last, second_last = parts[-1], parts[-2]
    keep = 3 if len(last) == 2 and len(second_last) <= 3 else 2
    return ".".join(parts[-keep:])


def _hostname(url: str) -> Optional[str]:
    try:
        return urlsplit(url).hostname or None
    except ValueError:
        return None


def extract_domain(query: str, public_suffix: bool = False) -> str:
    """Domain from a URL-like query, "" when the query has no dot."""
    trimmed = (query or "").strip().lower()
    if not trimmed or "." not in trimmed:
        return ""
    url = trimmed if "://" in trimmed else f"https://{trimmed}"
    host = _hostname(url)
    if host is None:
        # Malformed URL: naive split
        host = trimmed.split("/")[0] or trimmed
    return normalize_domain(host, public_suffix)


def guess_domain(query: str) -> str:
    """Create a .com guess from a name."""
    slug = _NON_ALNUM.sub("", (query or "").lower())
    return f"{slug}.com" if slug else ""


def is_blocked_host(domain: str, blocked: Iterable[str] = BLOCKED_HOSTS) -> bool:
    return any(domain == host or domain.endswith(f".{host}") for host in blocked)


# -------------------- Directory match --------------------


def pick_company(
    companies: List[CompanyCandidate], query: str, public_suffix: bool = False
) -> Optional[CompanyCandidate]:
    """
    Best directory candidate for the query.

    Precedence: exact domain, exact name (case-insensitive), name contains
    the query, any row with a domain, then the first row.
    """
    if not companies:
        return None
    q = query.lower().strip()

    def name(c: CompanyCandidate) -> str:
        return (c.company_name or "").lower()

    rules = (
        lambda c: normalize_domain(c.domain or "", public_suffix) == q,
        lambda c: name(c) == q,
        lambda c: q in name(c),
        lambda c: bool(c.domain),
    )
    for rule in rules:
        match = next((c for c in companies if rule(c)), None)
        if match is not None:
            return match
    return companies[0]


def companies_from_search(result: Any) -> List[CompanyCandidate]:
    if is_error(result):
        return []
    rows = first_list(
        result, "companies", ("structuredContent", "companies"), ("data", "companies")
    )
    return [CompanyCandidate.from_dict(row) for row in rows]


# -------------------- Web search scoring --------------------


def query_tokens(query: str) -> List[str]:
    """Words of at least three characters, led by the full slug."""
    lowered = (query or "").lower()
    tokens = [t for t in _NON_ALNUM.split(lowered) if len(t) >= MIN_TOKEN_LENGTH]
    slug = _NON_ALNUM.sub("", lowered)
    if slug and slug not in tokens:
        tokens.insert(0, slug)
    return tokens


def score_domain(domain: str, tokens: Iterable[str]) -> int:
    score = 0
    for token in tokens:
        exact = next((s for tld, s in TLD_SCORES if domain == f"{token}.{tld}"), None)
        if exact is not None:
            score = max(score, exact)
        elif domain.startswith(f"{token}."):
            score = max(score, PREFIX_SCORE)
        elif token in domain:
            score = max(score, CONTAINS_SCORE)
    return score


def extract_domain_from_web_search(
    result: Any, query: str, public_suffix: bool = False
) -> str:
    """
    Pick the most likely official domain among web-search results.

    Highest score wins, ties keep the first-seen domain. Blocked hosts and
    zero scores never win.
    """
    results = first_list(
        result,
        "results",
        "items",
        ("structuredContent", "results"),
        ("structuredContent", "items"),
        ("data", "results"),
    )
    tokens = query_tokens(query)

    best_domain, best_score = "", 0
    for item in results:
        url = first_present(item, "url", "link", "href")
        if not isinstance(url, str) or not url:
            continue
        host = _hostname(url)
        if not host:
            continue
        domain = normalize_domain(host, public_suffix)
        if is_blocked_host(domain):
            continue
        score = score_domain(domain, tokens)
        if score > best_score:
            best_domain, best_score = domain, score

    return best_domain


# -------------------- Public resolver --------------------


async def resolve_company_domain(
    client: ToolClient,
    query: str,
    *,
    public_suffix: bool = False,
    web_search_limit: int = 5,
    retries: int = 2,
    backoff_seconds: float = 0.4,
) -> ResolvedDomain:
    """
    Resolve a free-text query to a company domain.

    Returns a ``ResolvedDomain`` whose ``domain`` is "" only when every
    strategy came up empty.
    """
    direct = extract_domain(query, public_suffix)
    if direct:
        logger.info("domain_resolution_step", query=query, strategy="direct", domain=direct)
        return ResolvedDomain(domain=direct, strategy=ResolutionStrategy.DIRECT)

    search = await call_tool_with_retry(
        client, "search_companies", {"searchCriteria": query}, retries, backoff_seconds
    )
    companies = companies_from_search(search)
    best = pick_company(companies, query, public_suffix)
    if best is not None and best.domain:
        domain = normalize_domain(best.domain, public_suffix)
        if domain:
            logger.info(
                "domain_resolution_step",
                query=query,
                strategy="directory",
                domain=domain,
                candidates=len(companies),
            )
            return ResolvedDomain(
                domain=domain, name=best.company_name, strategy=ResolutionStrategy.DIRECTORY
            )
    logger.debug("directory_search_miss", query=query, candidates=len(companies))

    web = await call_tool_with_retry(
        client,
        "web_search",
        {"query": f"{query} official website", "limit": web_search_limit},
        retries,
        backoff_seconds,
    )
    web_domain = extract_domain_from_web_search(web, query, public_suffix)
    if web_domain:
        logger.info("domain_resolution_step", query=query, strategy="web_search", domain=web_domain)
        return ResolvedDomain(domain=web_domain, strategy=ResolutionStrategy.WEB_SEARCH)

    guess = guess_domain(query)
    if guess:
        logger.info("domain_resolution_step", query=query, strategy="guess", domain=guess)
        return ResolvedDomain(domain=guess, strategy=ResolutionStrategy.GUESS)

    logger.warning("domain_unresolved", query=query)
    return ResolvedDomain(domain="", strategy=ResolutionStrategy.UNRESOLVED)
