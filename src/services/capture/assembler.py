"""Assembly of sanitized fragments into self-contained, style-isolated pages."""

from __future__ import annotations

import html


# Every element is reset with `all: unset` before a small fixed design system
# is reapplied; nothing from the captured page's own CSS survives.
ISOLATION_CSS = """\
html, body {
  margin: 0 !important; padding: 20px !important;
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif !important;
  line-height: 1.6 !important; color: #1f2937 !important;
  background: white !important;
}
* {
  all: unset !important;
  box-sizing: border-box !important;
  max-width: 100% !important;
  word-wrap: break-word !important;
  display: block !important;
}
div, article, section, main, p, li, ul, ol, figure, figcaption,
h1, h2, h3, h4, h5, h6 { display: block !important; margin: 0 0 12px 0 !important; }
h1 { font-size: 1.8em !important; font-weight: 700 !important; }
h2 { font-size: 1.5em !important; font-weight: 700 !important; }
h3, h4, h5, h6 { font-size: 1.2em !important; font-weight: 600 !important; }
li { display: list-item !important; margin-left: 20px !important; }
strong, b { font-weight: 700 !important; display: inline !important; }
em, i { font-style: italic !important; display: inline !important; }
span, code, abbr, small, sub, sup { display: inline !important; }
a {
  display: inline !important; color: #0066cc !important;
  text-decoration: underline !important; cursor: pointer;
}
img {
  max-width: 100% !important; height: auto !important;
  display: block !important; border-radius: 8px;
}
table {
  display: table !important; width: 100% !important; table-layout: fixed !important;
  border-collapse: collapse !important;
}
tr { display: table-row !important; }
td, th {
  display: table-cell !important; border: 1px solid #e5e7eb !important;
  padding: 8px !important;
}
pre, code {
  background: #f3f4f6 !important; border-radius: 8px !important;
  white-space: pre-wrap !important; word-break: break-all !important;
}
pre { padding: 12px !important; overflow-x: auto !important; }
blockquote {
  border-left: 4px solid #ddd !important; padding-left: 16px !important;
  margin: 16px 0 !important;
}
"""

DEFAULT_TITLE = "Web page content"
EMPTY_CONTENT_PLACEHOLDER = (
    "<p>The page content is empty or was blocked by anti-bot protection.</p>"
)


class DocumentAssembler:
    """Wrap a sanitized fragment into an independently renderable document."""

    def __init__(self, stylesheet: str = ISOLATION_CSS) -> None:
        self.stylesheet = stylesheet

    def assemble(self, fragment: str, title: str | None = None) -> str:
        body = fragment if fragment.strip() else EMPTY_CONTENT_PLACEHOLDER
        safe_title = html.escape((title or "").strip() or DEFAULT_TITLE)
        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '<meta charset="utf-8">\n'
            f"<title>{safe_title}</title>\n"
            '<meta name="viewport" content="width=device-width, initial-scale=1">\n'
            '<meta name="referrer" content="no-referrer">\n'
            f"<style>\n{self.stylesheet}</style>\n"
            "</head>\n"
            "<body>\n"
            f"{body}\n"
            "</body>\n"
            "</html>"
        )


_GUIDANCE_BY_CODE = {
    "launch_failed": (
        "- The headless browser could not start in this hosting environment "
        "(serverless platforms usually cannot run one)\n"
        "- Install the browser binaries with `playwright install chromium`"
    ),
    "navigation_failed": (
        "- The site uses strong anti-bot protection (Cloudflare, Akamai, "
        "DDoS protection)\n"
        "- The server's outbound network access is restricted\n"
        "- The page did not finish loading within the time limit"
    ),
}


def _escape_markdown_text(text: str) -> str:
    return html.escape(text, quote=False).replace("\n", " ")


def error_document(url: str, error: str, error_code: str | None = None) -> str:
    """Build the Markdown notice shown instead of a page that failed to load."""
    causes = _GUIDANCE_BY_CODE.get(
        error_code or "",
        f"{_GUIDANCE_BY_CODE['navigation_failed']}\n"
        f"{_GUIDANCE_BY_CODE['launch_failed']}",
    )
    safe_url = url.replace("`", "%60")
    return (
        "## ❌ Failed to load the page\n\n"
        f"**URL:** `{safe_url}`\n\n"
        f"**Error:** {_escape_markdown_text(error) or 'Unknown error'}\n\n"
        "**Possible causes:**\n"
        f"{causes}\n\n"
        "**Suggestions:**\n"
        "- Try a simple site first (for example `http://example.com`)\n"
        "- Or deploy to a server that can run a headless browser"
    )
