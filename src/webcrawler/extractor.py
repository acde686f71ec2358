"""Turn a fetched document into a structured PageRecord."""

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from webcrawler.constants import (
    DEFAULT_LINK_TARGET,
    METADATA_KEYS,
    NO_TITLE_PLACEHOLDER,
    NON_VISIBLE_TAGS,
)
from webcrawler.exceptions import InvalidUrl
from webcrawler.models import Document, ImageRecord, LinkRecord, PageRecord, utc_now
from webcrawler.url_utils import absolutize

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


def extract(
    document: Document,
    url: Optional[str] = None,
    depth: int = 0,
    timestamp: Optional[datetime] = None,
    keep_raw_html: bool = True,
) -> PageRecord:
    """Extract title, text, links, images and metadata from a document.

    No I/O happens here; the same document and URL always produce the
    same record apart from `timestamp`.

    Args:
        document: Document returned by a fetch strategy
        url: URL the record is filed under (defaults to document.url).
            Links and images resolve against document.url, the final
            URL after redirects.
        depth: Depth of the URL in the crawl
        timestamp: Time of the fetch (defaults to now, UTC)
        keep_raw_html: Whether to keep the document body on the record

    Returns:
        PageRecord for the document
    """
    page_url = url or document.url
    soup = BeautifulSoup(document.body, "html.parser")
    # Relative references resolve against where the body was served from
    base_url = _base_url(soup, document.url or page_url)

    return PageRecord(
        title=_extract_title(soup),
        url=page_url,
        timestamp=timestamp or utc_now(),
        links=tuple(extract_links(soup, base_url)),
        images=tuple(extract_images(soup, base_url)),
        metadata=extract_metadata(soup),
        status_code=document.status_code,
        content_type=document.content_type,
        raw_html=document.body if keep_raw_html else None,
        depth=depth,
        # Last: strips non-visible elements from the tree
        extracted_text=_extract_text(soup),
    )


def _base_url(soup: BeautifulSoup, page_url: str) -> str:
    """Resolve a <base href> against the page URL, if there is one."""
    base = soup.find("base", href=True)
    if base:
        try:
            return absolutize(base["href"], page_url)
        except InvalidUrl:
            logger.warning(f"Ignoring invalid <base href> on {page_url}: {base['href']}")
    return page_url


def _extract_title(soup: BeautifulSoup) -> str:
    title = soup.find("title")
    if title:
        text = title.get_text(strip=True)
        if text:
            return text

    for heading in soup.find_all(HEADING_TAGS):
        text = heading.get_text(" ", strip=True)
        if text:
            return text

    return NO_TITLE_PLACEHOLDER


def _extract_text(soup: BeautifulSoup) -> str:
    """Flattened visible text of the body (whole document if no <body>)."""
    root = soup.body or soup
    for tag in root.find_all(NON_VISIBLE_TAGS):
        tag.decompose()
    return root.get_text(separator=" ", strip=True)


def extract_links(soup: BeautifulSoup, base_url: str) -> List[LinkRecord]:
    """Every anchor with a resolvable href, in document order."""
    links = []

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        try:
            absolute_url = absolutize(href, base_url)
        except InvalidUrl as e:
            logger.warning(f"Skipping link on {base_url}: {e}")
            continue

        links.append(LinkRecord(
            text=anchor.get_text(" ", strip=True),
            absolute_url=absolute_url,
            title=anchor.get("title", ""),
            target=anchor.get("target") or DEFAULT_LINK_TARGET,
        ))

    return links


def extract_images(soup: BeautifulSoup, base_url: str) -> List[ImageRecord]:
    """Every <img> with a resolvable src, in document order."""
    images = []

    for img in soup.find_all("img", src=True):
        try:
            absolute_src = absolutize(img["src"], base_url)
        except InvalidUrl as e:
            logger.warning(f"Skipping image on {base_url}: {e}")
            continue

        images.append(ImageRecord(
            absolute_src=absolute_src,
            alt=img.get("alt", ""),
            title=img.get("title", ""),
            width=img.get("width", ""),
            height=img.get("height", ""),
        ))

    return images


def extract_metadata(soup: BeautifulSoup) -> Dict[str, str]:
    """Well-known meta values; every key is present, missing ones are ""."""
    metadata = {key: "" for key in METADATA_KEYS}

    for key in ("description", "keywords", "author", "viewport"):
        tag = soup.find("meta", attrs={"name": re.compile(f"^{key}$", re.I)})
        if tag:
            metadata[key] = (tag.get("content") or "").strip()

    charset_tag = soup.find("meta", charset=True)
    if charset_tag:
        metadata["charset"] = charset_tag["charset"].strip()
    else:
        content_type_tag = soup.find("meta", attrs={"http-equiv": re.compile("^content-type$", re.I)})
        if content_type_tag:
            content = content_type_tag.get("content", "")
            if "charset=" in content.lower():
                metadata["charset"] = content[content.lower().index("charset=") + 8:].strip()

    return metadata
