# pricematch/providers/shopping_scraper.py

"""Page scraper for Google Shopping result pages."""

import json
import re
import urllib.parse
from typing import Any

from bs4 import BeautifulSoup, Tag

from pricematch.models.product import RawCandidate
from pricematch.providers.base_provider import SourceProvider
from pricematch.providers.browser_session import BrowserSession
from pricematch.services.rate_limiter import RateLimiter
from pricematch.storage.result_cache import ResultCache

_PRICE_RE = re.compile(r"\$\s*([\d,]+(?:\.\d+)?)")

# Google Shopping UI chrome that looks like a card title
_NOT_PRODUCT_TITLE_RE = re.compile(
    r"^(choose what you're giving feedback on|top deals|popular products"
    r"|see (all )?deals|feedback|sort by|filter|refine|view (all )?results"
    r"|shopping results|compare prices|add to (cart|basket)|buy (now|from)"
    r"|free shipping|in stock|out of stock|save \d+%|off|sale)$",
    re.IGNORECASE,
)
_NOT_PRODUCT_CONTAINS_RE = re.compile(
    r"feedback|\.\.\.$|^top deals|^popular products|^see (all )?deals"
    r"|^sort by|^filter$",
    re.IGNORECASE,
)

# Retailer names recognised in card text when links carry no host
KNOWN_STORE_NAMES: list[str] = [
    "Walmart", "Target", "Amazon", "Best Buy", "eBay", "Costco",
    "Newegg", "B&H", "Kohl's", "Macy's", "Nordstrom", "Wayfair",
    "Home Depot", "Lowe's", "Staples", "Office Depot", "CVS",
    "Walgreens", "Sephora", "Etsy", "Chewy",
]

_CONTAINER_SELECTOR = (
    "div[data-docid], .sh-dgr__content, .sh-dgr__grid-result"
)
_TITLE_SELECTORS = ["h3", "h4", "[role=heading]", ".title", ".name"]
_MAX_PARENT_HOPS = 15


class ShoppingPageScraper(SourceProvider):
    """Scrape Google Shopping result pages through a shared browser session.

    Extraction strategies, in order:

    1. JSON-LD ``Product`` / ``ItemList`` blocks.
    2. Known result containers (``div[data-docid]`` and friends).
    3. Generic cards: elements with a dollar price, an image or link,
       and a card-sized amount of text.
    4. Outbound retailer links, walking up to their enclosing card.

    Any failure to fetch or extract yields an empty list, never an
    exception: the scraper is a best-effort source.
    """

    provider_id = "shopping_scraper"
    label = "Shopping Page Scraper"
    needs_browser = True
    SEARCH_URL = (
        "https://www.google.com/search?tbm=shop&hl=en&gl=us&q={query}"
    )

    def __init__(
        self,
        cache: ResultCache | None = None,
        rate_limiter: RateLimiter | None = None,
        browser: BrowserSession | None = None,
    ) -> None:
        super().__init__(cache=cache, rate_limiter=rate_limiter)
        self.browser = browser or BrowserSession()

    def is_configured(self) -> bool:
        return bool(self.settings.ENABLE_SHOPPING_SCRAPER)

    def health_url(self) -> str:
        return "https://www.google.com/"

    def _request_params(self, variant: str, limit: int) -> dict[str, Any]:
        return {"q": variant, "tbm": "shop", "gl": "us"}

    def _fetch_payload(self, variant: str, limit: int) -> Any | None:
        url = self.SEARCH_URL.format(query=urllib.parse.quote_plus(variant))
        headers = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self.health_url(),
        }
        html = self.browser.fetch_html(url, headers)
        if html is None:
            self._record_failure()
            return None
        self._record_success()
        return {"query": variant, "html": html}

    def _parse_payload(self, payload: Any, limit: int) -> list[RawCandidate]:
        if not isinstance(payload, dict) or not payload.get("html"):
            return []
        soup = BeautifulSoup(str(payload["html"]), "lxml")
        query = str(payload.get("query") or "")

        candidates = self._extract_json_ld(soup)
        if not candidates:
            candidates = self._extract_dom(soup, limit)
        if not candidates:
            self.logger.warning(
                "[%s] No products extracted for '%s'",
                self.provider_id,
                query,
            )
            return []

        query_words = [w.lower() for w in query.split() if len(w) > 2]
        if query_words:
            candidates = [
                c
                for c in candidates
                if any(w in c.title.lower() for w in query_words)
            ]
        return candidates[:limit]

    # ------------------------------------------------------------------
    # JSON-LD structured data
    # ------------------------------------------------------------------

    def _extract_json_ld(self, soup: BeautifulSoup) -> list[RawCandidate]:
        """Parse ``application/ld+json`` Product and ItemList blocks."""
        candidates: list[RawCandidate] = []
        for script in soup.find_all("script", type="application/ld+json"):
            if not script.string:
                continue
            try:
                data: Any = json.loads(script.string)
            except (json.JSONDecodeError, TypeError):
                continue
            for node in data if isinstance(data, list) else [data]:
                candidates.extend(self._json_ld_products(node))
        return candidates

    def _json_ld_products(self, node: Any) -> list[RawCandidate]:
        if not isinstance(node, dict):
            return []
        kind = node.get("@type")
        if kind == "ItemList":
            listed: list[RawCandidate] = []
            for element in node.get("itemListElement", []):
                if isinstance(element, dict):
                    item = element.get("item", element)
                    listed.extend(self._json_ld_products(item))
            return listed
        if kind != "Product":
            return []

        title = str(node.get("name") or "").strip()
        image = node.get("image") or ""
        if isinstance(image, list):
            image = image[0] if image else ""
        offers = node.get("offers") or []
        if isinstance(offers, dict):
            offers = offers.get("offers", [offers])

        found: list[RawCandidate] = []
        for offer in offers:
            if not isinstance(offer, dict):
                continue
            price = self.extract_price(
                offer.get("price", offer.get("lowPrice"))
            )
            if not title or price <= 0:
                continue
            seller = offer.get("seller") or {}
            seller_name = (
                seller.get("name") if isinstance(seller, dict) else seller
            )
            url = self.resolve_redirect(str(offer.get("url") or ""))
            availability = str(offer.get("availability") or "")
            found.append(
                RawCandidate(
                    title=title,
                    price=price,
                    source_label=str(seller_name or self.store_from_url(url)),
                    url=url,
                    currency=str(offer.get("priceCurrency") or "USD"),
                    image_url=str(image),
                    in_stock=(
                        "instock" in availability.lower()
                        if availability
                        else None
                    ),
                    provider_id=self.provider_id,
                )
            )
        return found

    # ------------------------------------------------------------------
    # DOM heuristics
    # ------------------------------------------------------------------

    def _extract_dom(
        self, soup: BeautifulSoup, limit: int,
    ) -> list[RawCandidate]:
        """Run the three DOM strategies and parse the unique cards."""
        elements: list[Tag] = list(soup.select(_CONTAINER_SELECTOR))
        elements += [
            el
            for el in soup.find_all(["div", "article", "section"])
            if self._looks_like_card(el)
        ]
        elements += self._cards_from_links(soup)

        seen_ids: set[int] = set()
        seen_titles: set[str] = set()
        candidates: list[RawCandidate] = []
        for element in elements:
            if id(element) in seen_ids:
                continue
            seen_ids.add(id(element))
            if len(seen_ids) > limit * 3:
                break
            candidate = self._parse_card(element)
            if candidate is None:
                continue
            key = candidate.title.lower()
            if key in seen_titles:
                continue
            seen_titles.add(key)
            candidates.append(candidate)
        return candidates

    @staticmethod
    def _looks_like_card(element: Tag) -> bool:
        text = element.get_text(" ", strip=True)
        if not 30 < len(text) < 2000 or not _PRICE_RE.search(text):
            return False
        return element.find("img") is not None or element.find(
            "a", href=True
        ) is not None

    def _cards_from_links(self, soup: BeautifulSoup) -> list[Tag]:
        cards: list[Tag] = []
        for link in soup.select('a[href*="/url?q=http"]'):
            target = self.resolve_redirect(str(link.get("href", "")))
            if "google." in target or "gstatic" in target:
                continue
            parent = link.parent
            for _ in range(_MAX_PARENT_HOPS):
                if not isinstance(parent, Tag):
                    break
                text = parent.get_text(" ", strip=True)
                if (
                    _PRICE_RE.search(text)
                    and parent.find("img") is not None
                    and 30 < len(text) < 2000
                ):
                    cards.append(parent)
                    break
                parent = parent.parent
        return cards

    def _parse_card(self, element: Tag) -> RawCandidate | None:
        title = ""
        for selector in _TITLE_SELECTORS:
            heading = element.select_one(selector)
            if heading is not None and heading.get_text(strip=True):
                title = heading.get_text(" ", strip=True)
                break
        text = element.get_text("\n", strip=True)
        if not title:
            title = text.split("\n")[0] if text else ""
        title = " ".join(title.split())[:200]
        if (
            len(title) <= 3
            or _NOT_PRODUCT_TITLE_RE.match(title)
            or _NOT_PRODUCT_CONTAINS_RE.search(title)
        ):
            return None

        price_match = _PRICE_RE.search(text)
        price = (
            float(price_match.group(1).replace(",", ""))
            if price_match
            else 0.0
        )
        if price <= 0:
            return None

        url = self._best_link(element)
        store = self.store_from_url(url) if url else ""
        if not store:
            store = self._store_from_text(text)
        if not store:
            return None

        return RawCandidate(
            title=title,
            price=price,
            source_label=store,
            url=url,
            image_url=self._image_src(element),
            in_stock=None,
            provider_id=self.provider_id,
        )

    def _best_link(self, element: Tag) -> str:
        """First outbound retailer link, redirect-resolved."""
        for link in element.find_all("a", href=True):
            href = self.resolve_redirect(str(link["href"]))
            if href.startswith("http") and not self._is_google(href):
                return href
        return ""

    @staticmethod
    def _image_src(element: Tag) -> str:
        img = element.find("img")
        if not isinstance(img, Tag):
            return ""
        src = str(
            img.get("src")
            or img.get("data-src")
            or img.get("data-lazy-src")
            or ""
        )
        if src.startswith("//"):
            return f"https:{src}"
        return src if src.startswith("http") else ""

    @staticmethod
    def _store_from_text(text: str) -> str:
        for name in KNOWN_STORE_NAMES:
            if name in text:
                return name
        return ""

    @staticmethod
    def _is_google(url: str) -> bool:
        host = urllib.parse.urlparse(url).hostname or ""
        return "google." in host or "gstatic." in host or host == "google"

    @staticmethod
    def resolve_redirect(href: str) -> str:
        """Unwrap ``/url?q=``, ``/url?url=`` and ``adurl=`` redirects."""
        if not href:
            return ""
        parsed = urllib.parse.urlparse(href)
        if parsed.path in ("/url", "/aclk") or "adurl=" in parsed.query:
            params = urllib.parse.parse_qs(parsed.query)
            for key in ("q", "url", "adurl"):
                values = params.get(key)
                if values and values[0].startswith("http"):
                    return values[0]
        return href

    @staticmethod
    def store_from_url(url: str) -> str:
        """Store label from a retailer host, e.g. ``www.bestbuy.com`` -> Bestbuy."""
        host = urllib.parse.urlparse(url).hostname or ""
        for prefix in ("www.", "m."):
            if host.startswith(prefix):
                host = host[len(prefix):]
        if not host or "google." in host or host == "google":
            return ""
        label = host.split(".")[0]
        return label[:1].upper() + label[1:]
