"""Sample rendered pages used across capture tests."""

from __future__ import annotations


# 210 characters of text inside <article>
ARTICLE_TEXT = "A" * 210
# 50 characters inside a content-classed div
SIDEBAR_TEXT = "B" * 50

ARTICLE_PAGE = f"""<!DOCTYPE html>
<html>
<head>
  <title>Quarterly earnings</title>
  <meta name="description" content="x">
  <link rel="stylesheet" href="/site.css">
  <style>body {{ color: red }}</style>
  <script>window.tracker = 1;</script>
</head>
<body>
  <header><nav><a href="/">Home</a></nav></header>
  <div class="cookie-banner">We use cookies</div>
  <div class="content-teaser">{SIDEBAR_TEXT}</div>
  <article>
    <h1 onclick="steal()">Results</h1>
    <p style="color: red">{ARTICLE_TEXT}</p>
    <a href="/reports/q3">Report</a>
    <a href="javascript:alert(1)">Bad</a>
    <img src="chart.png" srcset="chart-2x.png 2x" alt="chart">
    <!-- analytics -->
  </article>
  <footer>Copyright</footer>
</body>
</html>
"""

SHORT_PAGE = """<html><body>
  <main><p>Too short to count as main content.</p></main>
  <p>Body text outside main.</p>
</body></html>
"""

# A page whose content root has relative and broken URLs, captured from
# https://example.com/a/b
RELATIVE_URLS_PAGE = """<html><body><article>
  <p>text</p>
  <a id="rel" href="../c">up</a>
  <a id="sib" href="d?x=1">sibling</a>
  <a id="frag" href="#top">top</a>
  <a id="mail" href="mailto:a@example.com">mail</a>
  <a id="bad-ipv6" href="//[::1">broken</a>
  <a id="bad-port" href="//example.com:notaport/x">bad port</a>
  <img id="rel-img" src="img/pic.png">
  <img id="bad-img" src="//example.com:notaport/x.png">
  <img id="lazy-img" data-src="/lazy.png">
  <img id="no-src">
</article></body></html>
"""
