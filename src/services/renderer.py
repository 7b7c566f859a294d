"""Presentation of the current Document as a standalone host page.

HTML documents are embedded in an ``<iframe sandbox="allow-scripts">`` via
``srcdoc``. The frame gets an opaque origin: it cannot read the host page,
open popups or navigate the top window. The only script allowed to run in it
is ``INTERCEPT_SCRIPT``, pinned by hash in an injected CSP meta tag. That
script turns link clicks into ``{type: "navigate", url}`` messages, which the
host page forwards to the workspace navigate endpoint.

Everything else (error notices, summaries) is Markdown, rendered to HTML and
passed through the sanitizer before it is inlined.
"""

from __future__ import annotations

import base64
import hashlib
import html

import markdown
from bs4 import BeautifulSoup, Doctype

from services.capture.assembler import ISOLATION_CSS
from services.capture.sanitizer import sanitize_fragment
from services.documents import Document, DocumentKind


NAVIGATE_ENDPOINT = "/api/v1/workspace/navigate"

EMPTY_VIEW = '<div class="empty"><p>Enter a URL or open a PDF to get started.</p></div>'

MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]

INTERCEPT_SCRIPT = """
document.addEventListener('click', function (event) {
  var target = event.target;
  var anchor = target && target.closest ? target.closest('a') : null;
  if (!anchor) { return; }
  var raw = anchor.getAttribute('href') || '';
  if (raw.charAt(0) === '#') { return; }
  event.preventDefault();
  var href = anchor.href;
  if (href) {
    window.parent.postMessage({ type: 'navigate', url: href }, '*');
  }
}, true);
"""

HOST_SCRIPT_TEMPLATE = """
(function () {
  var frame = document.getElementById('document-frame');
  window.addEventListener('message', function (event) {
    if (!frame || event.source !== frame.contentWindow) { return; }
    var data = event.data;
    if (!data || data.type !== 'navigate' || typeof data.url !== 'string') { return; }
    fetch(%(endpoint)s, {
      method: 'POST',
      headers: { 'Content-Type': 'application/json' },
      body: JSON.stringify({ type: 'navigate', url: data.url })
    }).then(function () { window.location.reload(); });
  });
})();
"""

HOST_CSS = """
html, body { margin: 0; height: 100%; background: #f9fafb; }
body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
  color: #1f2937; line-height: 1.6; }
.frame { width: 100%; height: 100%; border: 0; display: block; background: white; }
.prose { max-width: 860px; margin: 0 auto; padding: 24px; background: white; }
.prose table { border-collapse: collapse; width: 100%; }
.prose td, .prose th { border: 1px solid #e5e7eb; padding: 6px 10px; }
.prose pre { background: #f3f4f6; padding: 12px; border-radius: 8px;
  white-space: pre-wrap; }
.prose a { color: #0066cc; }
.empty { display: flex; height: 100%; align-items: center; justify-content: center;
  color: #6b7280; }
"""


def script_hash(script: str) -> str:
    digest = hashlib.sha256(script.encode("utf-8")).digest()
    return "sha256-" + base64.b64encode(digest).decode("ascii")


def frame_csp(script: str = INTERCEPT_SCRIPT) -> str:
    """CSP for framed documents: only the interception script may execute."""
    return "; ".join(
        [
            "default-src 'none'",
            f"script-src '{script_hash(script)}'",
            "style-src 'unsafe-inline'",
            "img-src http: https:",
            "media-src http: https:",
            "font-src http: https:",
            "form-action 'none'",
            "base-uri 'none'",
        ]
    )


def is_html_document(content: str) -> bool:
    head = content.lstrip()[:32].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


def render_markdown(text: str, base_url: str = "") -> str:
    """Markdown to sanitized HTML."""
    rendered = markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    return sanitize_fragment(rendered, base_url)


class IsolatedRenderer:
    def __init__(self, navigate_endpoint: str = NAVIGATE_ENDPOINT) -> None:
        self.navigate_endpoint = navigate_endpoint

    def render(self, document: Document) -> str:
        if document.kind is DocumentKind.NONE:
            return self._host_page(EMPTY_VIEW)
        if document.kind is DocumentKind.PDF:
            return self._host_page(self._pdf_frame(document))
        if is_html_document(document.raw_content):
            return self._host_page(
                self._sandboxed_frame(document), with_host_script=True
            )
        body = render_markdown(document.raw_content, document.source_url)
        return self._host_page(f'<div class="prose">{body}</div>', title=document.title)

    def host_script(self) -> str:
        endpoint = '"' + self.navigate_endpoint.replace('"', "") + '"'
        return HOST_SCRIPT_TEMPLATE % {"endpoint": endpoint}

    def host_csp(self) -> str:
        """Policy for host pages.

        ``srcdoc`` frames inherit the embedding page's policy, so it admits
        the interception script as well as the host script.
        """
        scripts = f"'{script_hash(self.host_script())}' '{script_hash(INTERCEPT_SCRIPT)}'"
        return "; ".join(
            [
                "default-src 'none'",
                f"script-src {scripts}",
                "style-src 'unsafe-inline'",
                "img-src http: https:",
                "media-src http: https:",
                "font-src http: https:",
                "frame-src http: https:",
                "connect-src 'self'",
                "form-action 'none'",
                "base-uri 'none'",
            ]
        )

    def frame_document(self, content: str) -> str:
        """Inject the isolation stylesheet, the CSP and the interception script."""
        soup = BeautifulSoup(content, "html.parser")
        html_tag = soup.find("html")
        if html_tag is None:
            html_tag = soup.new_tag("html")
            html_tag.extend([n for n in soup.contents if not isinstance(n, Doctype)])
            soup.append(html_tag)

        head = soup.find("head")
        if head is None:
            head = soup.new_tag("head")
            html_tag.insert(0, head)
        body = soup.find("body")
        if body is None:
            body = soup.new_tag("body")
            for node in [n for n in html_tag.contents if n is not head]:
                body.append(node.extract())
            html_tag.append(body)

        csp = soup.new_tag(
            "meta",
            attrs={"http-equiv": "Content-Security-Policy", "content": frame_csp()},
        )
        head.insert(0, csp)
        style = soup.new_tag("style")
        style.string = ISOLATION_CSS
        head.append(style)

        script = soup.new_tag("script")
        script.string = INTERCEPT_SCRIPT
        body.append(script)
        return str(soup)

    def _sandboxed_frame(self, document: Document) -> str:
        framed = self.frame_document(document.raw_content)
        title = html.escape(document.title or document.source_url or "Fetched page")
        return (
            '<iframe id="document-frame" class="frame" sandbox="allow-scripts" '
            f'referrerpolicy="no-referrer" title="{title}" '
            f'srcdoc="{html.escape(framed, quote=True)}"></iframe>'
        )

    @staticmethod
    def _pdf_frame(document: Document) -> str:
        src = html.escape(document.source_url, quote=True)
        return (
            f'<iframe class="frame" src="{src}" title="PDF Document Viewer" '
            'allow="fullscreen">'
            f'<a href="{src}" target="_blank" rel="noopener noreferrer">Download PDF</a>'
            "</iframe>"
        )

    def _host_page(
        self, body: str, *, title: str | None = None, with_host_script: bool = False
    ) -> str:
        script = f"<script>{self.host_script()}</script>" if with_host_script else ""
        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n<head>\n<meta charset="utf-8">\n'
            f"<title>{html.escape(title or 'PageLens')}</title>\n"
            f"<style>{HOST_CSS}</style>\n"
            "</head>\n"
            f"<body>\n{body}\n{script}\n</body>\n</html>"
        )
