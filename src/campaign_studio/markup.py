"""Inspection and repair of generated HTML documents.

Rendered documents are checked after generation: a requested CTA must be a
real ``<a href>`` to the CTA link, and a supplied campaign image must be
present. Anything missing is inserted with the brand tokens. Documents that
need no repair are returned untouched, byte for byte.
"""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

from campaign_studio.colors import contrast_ratio
from campaign_studio.models import BrandSystem

logger = logging.getLogger(__name__)


def _soup(document: str) -> BeautifulSoup:
    return BeautifulSoup(document, "html.parser")


def _container(soup: BeautifulSoup) -> Tag:
    return soup.body or soup.html or soup


def find_link(document: str, href: str) -> Optional[Tag]:
    return _soup(document).find("a", href=href)


def has_image(document: str, src: str) -> bool:
    return _soup(document).find("img", src=src) is not None


def visible_text(document: str) -> str:
    soup = _soup(document)
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text(" ", strip=True)


def button_text_color(background: str, brand: BrandSystem) -> str:
    """White or the brand text colour, whichever reads better on ``background``."""
    candidates = ["#FFFFFF", brand.colors.text]
    return max(candidates, key=lambda c: contrast_ratio(c, background))


def _cta_anchor(soup: BeautifulSoup, text: str, href: str, brand: BrandSystem) -> Tag:
    accent = brand.colors.accent
    style = (
        f"display:inline-block;background-color:{accent};color:{button_text_color(accent, brand)};"
        f"padding:14px 28px;border-radius:{brand.visual_style.border_radius};text-decoration:none;"
        f"font-family:{brand.typography.body_font};font-weight:600;"
    )
    anchor = soup.new_tag("a", href=href, style=style)
    anchor.string = text
    return anchor


def _email_row(soup: BeautifulSoup, child: Tag, padding: str) -> Tag:
    """A centred single-cell presentation table, the email-safe wrapper."""
    table = soup.new_tag(
        "table", role="presentation", width="100%", cellpadding="0", cellspacing="0", border="0"
    )
    tr = soup.new_tag("tr")
    td = soup.new_tag("td", align="center", style=f"padding:{padding};")
    td.append(child)
    tr.append(td)
    table.append(tr)
    return table


def ensure_cta(document: str, channel: str, text: str, href: str, brand: BrandSystem) -> str:
    """Make sure the document links to ``href`` with a button reading ``text``."""
    soup = _soup(document)
    anchor = soup.find("a", href=href)
    if anchor is not None:
        if text in anchor.get_text(" ", strip=True) or text in visible_text(document):
            return document
        logger.info("CTA link found in %s without its label, relabelling", channel)
        anchor.string = text
        return str(soup)

    logger.info("CTA link %s missing from %s, appending a CTA block", href, channel)
    button = _cta_anchor(soup, text, href, brand)
    if channel == "email":
        block = _email_row(soup, button, "24px 0")
    else:
        block = soup.new_tag("section", style="text-align:center;padding:48px 16px;")
        block.append(button)
    _container(soup).append(block)
    return str(soup)


def ensure_asset(document: str, channel: str, asset_url: str, alt: str) -> str:
    """Make sure the campaign image is shown, centred, near the top."""
    soup = _soup(document)
    if soup.find("img", src=asset_url) is not None:
        return document

    logger.info("Campaign image missing from %s, inserting it", channel)
    img_style = "display:block;max-width:100%;height:auto;margin:0 auto;"
    if channel == "email":
        img = soup.new_tag("img", src=asset_url, alt=alt, width="560", style=img_style)
        block = _email_row(soup, img, "16px 0")
    else:
        img = soup.new_tag("img", src=asset_url, alt=alt, style=img_style)
        block = soup.new_tag("div", style="text-align:center;padding:24px 16px;")
        block.append(img)
    _container(soup).insert(0, block)
    return str(soup)
