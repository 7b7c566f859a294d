"""HTML sanitization for captured pages.

Two passes run over a parsed page:

1. ``strip_chrome`` removes non-content structure from the whole document:
   scripts, styles, embedded frames, navigation chrome, comments and anything
   whose class/id marks it as an ad, cookie banner or popup.
2. ``clean`` walks every descendant of the selected content root and rewrites
   attributes in place: event handlers, inline styles and script/data URLs are
   dropped, links and images are made absolute against the capture URL, and
   images are forced to lazy loading.

Cleaning is idempotent: running it on already-cleaned markup performs no
further removals or rewrites.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Comment, Tag

from services.capture.urls import (
    compact_url,
    has_scheme,
    is_absolute_http,
    resolve_url,
    validate_http_url,
)


logger = logging.getLogger(__name__)

# Tags to remove completely, together with their subtree
UNWANTED_TAGS = {
    "script",
    "style",
    "noscript",
    "svg",
    "canvas",
    "header",
    "footer",
    "nav",
    "aside",
    "form",
    "iframe",
    "frame",
    "frameset",
    "object",
    "embed",
    "applet",
    "meta",
    "link",
    "base",
    "template",
    "symbol",
    "use",
}

# class/id substrings that mark page chrome
CHROME_MARKERS = (
    "advert",
    "cookie",
    "popup",
    "modal",
    "banner",
    "consent",
    "newsletter",
)
# Short markers only count as a whole hyphen/underscore delimited segment,
# so "ad-slot" matches but "header-title" or "download" do not
CHROME_SEGMENTS = frozenset({"ad", "ads", "adsbygoogle", "sponsored"})

PROTECTED_TAGS = frozenset({"html", "head", "body"})

SCRIPT_SCHEMES = ("javascript:", "vbscript:")
PASSTHROUGH_LINK_SCHEMES = ("mailto", "tel")
MEDIA_TAGS = frozenset({"video", "audio", "source", "track"})

_SEGMENT_SPLIT_RE = re.compile(r"[-_\s]+")
_OTHER_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*:")
_CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)([^'")]+)\1\s*\)""", re.IGNORECASE)


@dataclass
class ExtractionContext:
    """Diagnostics for one capture call. Logged, never persisted."""

    base_url: str
    root: Tag | None = None
    removed: list[str] = field(default_factory=list)
    rewritten: list[str] = field(default_factory=list)

    def record_removal(self, tag: Tag, reason: str) -> None:
        self.removed.append(f"<{tag.name}> {reason}")

    def record_rewrite(self, tag: Tag, attr: str, action: str) -> None:
        self.rewritten.append(f"<{tag.name} {attr}> {action}")

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.rewritten)


def rewrite_css_urls(style: str, base_url: str) -> str:
    """Resolve relative ``url()`` references inside an inline style value.

    Absolute and ``data:`` references are left untouched; references that
    cannot be resolved become an empty ``url()``.
    """

    def _replace(match: re.Match[str]) -> str:
        reference = match.group(2).strip()
        if is_absolute_http(reference) or compact_url(reference).startswith("data:"):
            return match.group(0)
        resolved = resolve_url(reference, base_url)
        if resolved is None:
            return "url()"
        return f"url('{resolved}')"

    return _CSS_URL_RE.sub(_replace, style)


def _attr_text(value: object) -> str | None:
    """Flatten an attribute value; None if it is not interpretable."""
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return " ".join(value)
    return None


class HTMLSanitizer:
    """Strip executable and layout hazards from captured markup."""

    def __init__(self, strip_inline_styles: bool = True) -> None:
        self.strip_inline_styles = strip_inline_styles

    # ------------------------------------------------------------------
    # Blacklist pass
    # ------------------------------------------------------------------

    def strip_chrome(
        self, soup: BeautifulSoup | Tag, context: ExtractionContext | None = None
    ) -> None:
        """Remove scripts, embeds, navigation chrome and ad/cookie/popup markers."""
        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        for tag in soup.find_all(sorted(UNWANTED_TAGS)):
            if tag.decomposed:
                continue
            if context is not None:
                context.record_removal(tag, "blacklisted tag")
            tag.decompose()

        for tag in soup.find_all(True):
            if tag.decomposed or tag.name in PROTECTED_TAGS:
                continue
            if self._looks_like_chrome(tag):
                if context is not None:
                    context.record_removal(tag, "chrome marker")
                tag.decompose()

    @staticmethod
    def _looks_like_chrome(tag: Tag) -> bool:
        tokens: list[str] = []
        classes = tag.get("class")
        if isinstance(classes, list):
            tokens.extend(c for c in classes if isinstance(c, str))
        elif isinstance(classes, str):
            tokens.extend(classes.split())
        element_id = tag.get("id")
        if isinstance(element_id, str):
            tokens.append(element_id)

        for token in tokens:
            lowered = token.lower()
            if any(marker in lowered for marker in CHROME_MARKERS):
                return True
            if any(seg in CHROME_SEGMENTS for seg in _SEGMENT_SPLIT_RE.split(lowered)):
                return True
        return False

    # ------------------------------------------------------------------
    # Per-node cleaning
    # ------------------------------------------------------------------

    def clean(
        self, node: Tag, base_url: str, context: ExtractionContext | None = None
    ) -> Tag:
        """Clean ``node`` and all of its descendants in place.

        Args:
            node: Root of the subtree to clean. The root itself is never removed.
            base_url: URL the page was captured from, for resolving relative URLs.
            context: Optional diagnostics collector.

        Returns:
            The same ``node``.
        """
        ctx = context if context is not None else ExtractionContext(base_url=base_url)

        if not isinstance(node, BeautifulSoup):
            self._strip_attributes(node, ctx)
            self._rewrite_urls(node, base_url, ctx)

        # Explicit worklist: page depth is unbounded and removed nodes must
        # not be revisited.
        stack: list[Tag] = [c for c in reversed(node.contents) if isinstance(c, Tag)]
        while stack:
            tag = stack.pop()
            if not self._clean_node(tag, base_url, ctx):
                continue
            stack.extend(c for c in reversed(tag.contents) if isinstance(c, Tag))

        if ctx.changed:
            logger.debug(
                "Sanitized %s: %d removals, %d rewrites",
                base_url,
                len(ctx.removed),
                len(ctx.rewritten),
            )
        return node

    def _clean_node(self, tag: Tag, base_url: str, ctx: ExtractionContext) -> bool:
        """Clean one element. Returns False if the element was removed."""
        self._strip_attributes(tag, ctx)
        if tag.name == "img":
            return self._rewrite_image(tag, base_url, ctx)
        self._rewrite_urls(tag, base_url, ctx)
        return True

    def _strip_attributes(self, tag: Tag, ctx: ExtractionContext) -> None:
        for name, value in list(tag.attrs.items()):
            text = _attr_text(value)
            lowered_name = name.lower()
            reason: str | None = None
            if text is None:
                reason = "unparseable value"
            elif lowered_name.startswith("on"):
                reason = "event handler"
            elif lowered_name == "srcdoc":
                reason = "inline document"
            elif lowered_name == "style" and self.strip_inline_styles:
                reason = "inline style"
            else:
                compacted = compact_url(text)
                if any(scheme in compacted for scheme in SCRIPT_SCHEMES):
                    reason = "script url"
                elif compacted.startswith("data:"):
                    reason = "embedded data"
                elif lowered_name == "style" and "expression(" in compacted:
                    reason = "css expression"
            if reason is not None:
                del tag.attrs[name]
                ctx.record_rewrite(tag, name, f"dropped ({reason})")

    def _rewrite_urls(self, tag: Tag, base_url: str, ctx: ExtractionContext) -> None:
        if tag.name == "a":
            self._rewrite_link(tag, "href", base_url, ctx)
        elif tag.name in MEDIA_TAGS:
            for attr in ("srcset", "sizes"):
                if attr in tag.attrs:
                    del tag.attrs[attr]
                    ctx.record_rewrite(tag, attr, "dropped (responsive source)")
            self._rewrite_link(tag, "src", base_url, ctx)
            self._rewrite_link(tag, "poster", base_url, ctx)

        style = tag.get("style")
        if isinstance(style, str) and "url(" in style.lower():
            rewritten = rewrite_css_urls(style, base_url)
            if rewritten != style:
                tag["style"] = rewritten
                ctx.record_rewrite(tag, "style", "resolved url()")

    def _rewrite_link(
        self, tag: Tag, attr: str, base_url: str, ctx: ExtractionContext
    ) -> None:
        value = tag.get(attr)
        if value is None:
            return
        if not isinstance(value, str):
            del tag.attrs[attr]
            ctx.record_rewrite(tag, attr, "dropped (unparseable value)")
            return

        target = value.strip()
        if target.startswith("#") or has_scheme(target, *PASSTHROUGH_LINK_SCHEMES):
            return

        if is_absolute_http(target):
            resolved = validate_http_url(target)
        elif _OTHER_SCHEME_RE.match(compact_url(target)):
            resolved = None
        else:
            resolved = resolve_url(target, base_url)

        if resolved is None:
            del tag.attrs[attr]
            ctx.record_rewrite(tag, attr, "dropped (unresolvable)")
        elif resolved != value:
            tag[attr] = resolved
            ctx.record_rewrite(tag, attr, "absolutized")

    def _rewrite_image(self, tag: Tag, base_url: str, ctx: ExtractionContext) -> bool:
        src = tag.get("src")
        lazy_src = tag.attrs.pop("data-src", None)
        if (not isinstance(src, str) or not src.strip()) and isinstance(lazy_src, str):
            src = lazy_src
            ctx.record_rewrite(tag, "src", "promoted data-src")
        elif lazy_src is not None:
            ctx.record_rewrite(tag, "data-src", "dropped (lazy source)")

        if not isinstance(src, str) or not src.strip():
            ctx.record_removal(tag, "image without source")
            tag.decompose()
            return False

        target = src.strip()
        if is_absolute_http(target):
            resolved = validate_http_url(target)
        elif _OTHER_SCHEME_RE.match(compact_url(target)):
            resolved = None
        else:
            resolved = resolve_url(target, base_url)

        if resolved is None:
            ctx.record_removal(tag, "unresolvable image source")
            tag.decompose()
            return False
        if resolved != tag.get("src"):
            tag["src"] = resolved
            ctx.record_rewrite(tag, "src", "absolutized")

        for attr in ("srcset", "sizes", "decoding"):
            if attr in tag.attrs:
                del tag.attrs[attr]
                ctx.record_rewrite(tag, attr, "dropped (loading policy)")
        if tag.get("loading") != "lazy":
            tag["loading"] = "lazy"
            ctx.record_rewrite(tag, "loading", "forced lazy")

        self._rewrite_urls(tag, base_url, ctx)
        return True


def sanitize_fragment(html: str, base_url: str = "") -> str:
    """Sanitize a standalone HTML fragment (e.g. rendered Markdown)."""
    soup = BeautifulSoup(html, "html.parser")
    sanitizer = HTMLSanitizer()
    sanitizer.strip_chrome(soup)
    sanitizer.clean(soup, base_url)
    return str(soup)
