"""Page scraper: parse one fetched HTML document into typed SEO signals.

Extracts title, meta description, heading counts, same-origin links,
image attributes, Open Graph, canonical, robots directives, structured
data presence and a normalized text corpus (word count, top terms,
content fingerprint). Parsing is best effort and never raises.
"""

import re
from collections import Counter

from bs4 import BeautifulSoup

from models import ImageStats, PageSignals, ParsedDocument
from urls import resolve_href, same_origin

TOP_TERMS_LIMIT = 20
MIN_TERM_LENGTH = 4
FINGERPRINT_LENGTH = 280
GENERIC_ANCHORS = frozenset({"click here", "read more", "learn more", "here"})

STOPWORDS = frozenset(
    {
        "about", "above", "after", "again", "against", "also", "among", "another",
        "because", "been", "before", "being", "below", "between", "both", "cannot",
        "could", "does", "doing", "down", "during", "each", "even", "every", "from",
        "further", "have", "having", "here", "hers", "herself", "himself", "into",
        "itself", "just", "like", "made", "make", "many", "more", "most", "much",
        "must", "myself", "never", "only", "other", "ours", "ourselves", "over",
        "same", "should", "since", "some", "still", "such", "than", "that", "their",
        "theirs", "them", "themselves", "then", "there", "these", "they", "this",
        "those", "through", "under", "until", "upon", "very", "want", "were", "what",
        "when", "where", "which", "while", "whom", "will", "with", "within",
        "without", "would", "your", "yours", "yourself", "yourselves",
    }
)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_TOKEN = re.compile(r"[a-z0-9]+")


def _empty_signals(html_length: int = 0) -> PageSignals:
    return {
        "title": None,
        "meta_description": None,
        "heading_counts": {"h1": 0, "h2": 0, "h3": 0},
        "word_count": 0,
        "internal_links": [],
        "top_terms": [],
        "content_fingerprint": "",
        "image_stats": {"total": 0, "missing_alt": 0, "missing_dimensions": 0, "oversized": 0},
        "has_canonical": False,
        "has_viewport": False,
        "robots_meta": "",
        "has_open_graph": False,
        "has_structured_data": False,
        "has_favicon": False,
        "has_charset": False,
        "has_lang": False,
        "has_meta_keywords": False,
        "generic_anchor_count": 0,
        "html_length": html_length,
    }


def normalize_text(text: str) -> str:
    """Lowercase, non-alphanumerics to spaces, whitespace collapsed."""
    return " ".join(_NON_ALNUM.sub(" ", text.lower()).split())


def rank_terms(text: str, limit: int = TOP_TERMS_LIMIT) -> list[str]:
    """Most frequent non-stopword tokens; ties keep first-seen order."""
    tokens = [
        t
        for t in _TOKEN.findall(text.lower())
        if len(t) >= MIN_TERM_LENGTH and t not in STOPWORDS
    ]
    return [term for term, _ in Counter(tokens).most_common(limit)]


def _meta_by_name(soup: BeautifulSoup, name: str):
    return soup.find("meta", attrs={"name": re.compile(rf"^{name}$", re.I)})


def _has_rel(tag, wanted: str) -> bool:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(wanted in value.lower() for value in rel)


def parse_document(html: str, page_url: str) -> ParsedDocument:
    """
    Parse `html` fetched from `page_url`. Links and image sources are
    resolved against `page_url`; only same-origin targets are kept as
    internal links.
    """
    html = html or ""
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:
        return {
            "signals": _empty_signals(len(html)),
            "visible_text": "",
            "heading_texts": [],
            "link_candidates": [],
            "image_sources": [],
        }

    # --- Structured data (before scripts are removed) ---
    has_structured_data = soup.find("script", attrs={"type": re.compile(r"^application/ld\+json$", re.I)}) is not None

    # --- Title ---
    title = None
    if soup.title is not None:
        title = soup.title.get_text().strip()

    # --- Meta tags ---
    meta_description = None
    meta_desc_tag = _meta_by_name(soup, "description")
    if meta_desc_tag is not None and meta_desc_tag.get("content") is not None:
        meta_description = (meta_desc_tag["content"] or "").strip()

    robots_meta = ""
    robots_tag = _meta_by_name(soup, "robots")
    if robots_tag is not None and robots_tag.get("content"):
        robots_meta = (robots_tag["content"] or "").strip()

    has_viewport = _meta_by_name(soup, "viewport") is not None
    has_meta_keywords = _meta_by_name(soup, "keywords") is not None

    has_charset = soup.find("meta", attrs={"charset": True}) is not None
    if not has_charset:
        for tag in soup.find_all("meta", attrs={"http-equiv": re.compile(r"^content-type$", re.I)}):
            if "charset=" in (tag.get("content") or "").lower():
                has_charset = True
                break

    html_tag = soup.find("html")
    has_lang = html_tag is not None and bool((html_tag.get("lang") or "").strip())

    # --- Open Graph ---
    has_open_graph = False
    for prop in ("og:title", "og:image"):
        if soup.find("meta", attrs={"property": prop}) or soup.find("meta", attrs={"name": prop}):
            has_open_graph = True
            break

    # --- Link elements ---
    has_canonical = False
    has_favicon = False
    for link in soup.find_all("link"):
        if _has_rel(link, "canonical") and link.get("href"):
            has_canonical = True
        if _has_rel(link, "icon") or "favicon" in (link.get("href") or "").lower():
            has_favicon = True

    # --- Headings ---
    h1_tags = soup.find_all("h1")
    h2_tags = soup.find_all("h2")
    h3_tags = soup.find_all("h3")
    heading_texts = [h.get_text(" ", strip=True) for h in [*h1_tags, *h2_tags, *h3_tags]]

    # --- Links ---
    internal_links: set[str] = set()
    link_candidates: list[str] = []
    generic_anchor_count = 0
    for a in soup.find_all(["a", "area"]):
        if a.name == "a" and a.get_text(" ", strip=True).lower() in GENERIC_ANCHORS:
            generic_anchor_count += 1
        resolved = resolve_href(a.get("href"), page_url)
        if resolved is None:
            continue
        if resolved not in link_candidates:
            link_candidates.append(resolved)
        if same_origin(resolved, page_url):
            internal_links.add(resolved)

    # --- Images ---
    images = soup.find_all("img")
    missing_alt = 0
    missing_dimensions = 0
    image_sources: list[str] = []
    for img in images:
        if not (img.get("alt") or "").strip():
            missing_alt += 1
        if not img.has_attr("width") or not img.has_attr("height"):
            missing_dimensions += 1
        src = resolve_href(img.get("src"), page_url)
        if src and same_origin(src, page_url) and src not in image_sources:
            image_sources.append(src)

    image_stats: ImageStats = {
        "total": len(images),
        "missing_alt": missing_alt,
        "missing_dimensions": missing_dimensions,
        "oversized": 0,
    }

    # --- Visible text ---
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    visible_text = " ".join(soup.get_text(separator=" ").split())
    word_count = len(visible_text.split()) if visible_text else 0

    signals: PageSignals = {
        "title": title,
        "meta_description": meta_description,
        "heading_counts": {"h1": len(h1_tags), "h2": len(h2_tags), "h3": len(h3_tags)},
        "word_count": word_count,
        "internal_links": sorted(internal_links),
        "top_terms": rank_terms(visible_text),
        "content_fingerprint": normalize_text(visible_text)[:FINGERPRINT_LENGTH],
        "image_stats": image_stats,
        "has_canonical": has_canonical,
        "has_viewport": has_viewport,
        "robots_meta": robots_meta,
        "has_open_graph": has_open_graph,
        "has_structured_data": has_structured_data,
        "has_favicon": has_favicon,
        "has_charset": has_charset,
        "has_lang": has_lang,
        "has_meta_keywords": has_meta_keywords,
        "generic_anchor_count": generic_anchor_count,
        "html_length": len(html),
    }
    return {
        "signals": signals,
        "visible_text": visible_text,
        "heading_texts": heading_texts,
        "link_candidates": link_candidates,
        "image_sources": image_sources,
    }


def extract_signals(html: str, page_url: str) -> PageSignals:
    """Return only the retained PageSignals for `html`."""
    return parse_document(html, page_url)["signals"]


def extract_links(html: str, page_url: str) -> list[str]:
    """Same-origin, fragment-free link targets of `html`, sorted."""
    return extract_signals(html, page_url)["internal_links"]
