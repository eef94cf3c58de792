from __future__ import annotations

import html
import json
from typing import Any, Dict, Iterable, List, Optional

import feedparser
from bs4 import BeautifulSoup

from .exceptions import FormatError
from .models import RawRecord


# Text is handed to feedparser as UTF-8 bytes; the header makes it ignore
# whatever encoding the XML declaration claims.
_UTF8_HEADERS = {"content-type": "application/xml; charset=utf-8"}


def _str(val: Any) -> str:
    return val.strip() if isinstance(val, str) else ""


def first_img_src(markup: str) -> Optional[str]:
    """Return the ``src`` of the first ``<img>`` in an HTML fragment."""
    if not markup or "<img" not in markup.lower():
        return None
    img = BeautifulSoup(markup, "html.parser").find("img", src=True)
    if img is None:
        return None
    src = _str(img.get("src"))
    return src or None


def _first_content_value(entry: Dict[str, Any]) -> str:
    content = entry.get("content")
    if isinstance(content, list):
        for block in content:
            if isinstance(block, dict):
                val = _str(block.get("value"))
                if val:
                    return val
    return ""


def _xml_media(entry: Dict[str, Any], raw_summary: str) -> Optional[str]:
    # <media:content url="...">
    for mc in entry.get("media_content") or []:
        url = _str(mc.get("url")) if isinstance(mc, dict) else ""
        if url:
            return url

    # <enclosure url="..." type="image/...">
    enclosures = list(entry.get("enclosures") or [])
    enclosures += [
        ln for ln in entry.get("links") or []
        if isinstance(ln, dict) and ln.get("rel") == "enclosure"
    ]
    for enc in enclosures:
        if not isinstance(enc, dict):
            continue
        if "image" in (enc.get("type") or ""):
            url = _str(enc.get("href") or enc.get("url"))
            if url:
                return url

    # <media:thumbnail url="...">
    for th in entry.get("media_thumbnail") or []:
        url = _str(th.get("url")) if isinstance(th, dict) else ""
        if url:
            return url

    return first_img_src(raw_summary)


def parse_entry(entry: Dict[str, Any]) -> RawRecord:
    """
    Map a feedparser entry to a RawRecord.

    Date token priority: published (RSS pubDate / Atom published) -> updated.
    No validation happens here; empty fields are left empty.
    """
    title = _str(entry.get("title"))

    link = _str(entry.get("link"))
    if not link:
        for ln in entry.get("links") or []:
            if isinstance(ln, dict) and ln.get("rel", "alternate") == "alternate":
                link = _str(ln.get("href"))
                if link:
                    break

    date = ""
    for key in ("published", "updated"):
        date = _str(entry.get(key))
        if date:
            break

    raw_summary = _str(entry.get("summary") or entry.get("description")) or _first_content_value(entry)

    return RawRecord(
        title=title,
        link=link,
        date=date,
        summary=raw_summary,
        media=_xml_media(entry, raw_summary),
    )


def parse_feed_xml(text: str) -> List[RawRecord]:
    """
    Parse RSS/Atom text into raw records, one per ``item``/``entry``.

    Raises FormatError if the document is malformed and yields no entries.
    """
    feed = feedparser.parse(text.encode("utf-8"), response_headers=_UTF8_HEADERS)
    entries = getattr(feed, "entries", None) or []

    if getattr(feed, "bozo", 0) and not entries:
        exc = getattr(feed, "bozo_exception", None)
        msg = "Invalid RSS/Atom document"
        if exc:
            msg += f" ({exc})"
        raise FormatError(msg)

    return [parse_entry(e) for e in entries]


def _proxy_media(item: Dict[str, Any]) -> Optional[str]:
    enclosure = item.get("enclosure")
    if isinstance(enclosure, dict):
        url = _str(enclosure.get("link") or enclosure.get("url"))
        if url:
            return url

    media_content = item.get("media:content")
    if isinstance(media_content, dict):
        attrs = media_content.get("@attributes")
        if isinstance(attrs, dict):
            url = _str(attrs.get("url"))
            if url:
                return url

    thumb = _str(item.get("thumbnail"))
    if thumb:
        return thumb

    return first_img_src(_str(item.get("description")) or _str(item.get("content")))


def parse_proxy_items(items: Iterable[Any]) -> List[RawRecord]:
    """Map the ``items`` array of a feed-to-JSON proxy response to raw records."""
    out: List[RawRecord] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        out.append(
            RawRecord(
                title=_str(item.get("title")),
                link=_str(item.get("link")),
                date=_str(item.get("pubDate")),
                summary=_str(item.get("description")) or _str(item.get("content")),
                media=_proxy_media(item),
            )
        )
    return out


def extract_proxy_items(payload: Any) -> List[Any]:
    """
    Pull the item array out of a proxy response body.

    Accepts ``{"status": "ok", "items": [...]}`` or a bare array.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        raise FormatError("Proxy response is neither an object nor an array")
    if str(payload.get("status") or "").lower() == "error":
        raise FormatError(f"Proxy reported an error: {payload.get('message') or 'unknown'}")
    items = payload.get("items")
    if not isinstance(items, list):
        raise FormatError("Proxy response has no 'items' array")
    return items


def unwrap_xml_payload(body: str) -> str:
    """
    Recover feed XML from a passthrough proxy body.

    Handles a JSON envelope with a ``contents`` string and HTML-entity-escaped XML.
    """
    text = body.strip()
    if text.startswith("{"):
        try:
            envelope = json.loads(text)
        except ValueError:
            envelope = None
        if isinstance(envelope, dict):
            contents = envelope.get("contents")
            if not isinstance(contents, str):
                raise FormatError("Proxy envelope has no 'contents' string")
            text = contents.strip()
    if text.startswith("&lt;"):
        text = html.unescape(text)
    return text
