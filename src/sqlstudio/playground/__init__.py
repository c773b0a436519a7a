"""
Embedding page for the HTTP transport.

The page loads the hosted editor in a full-window iframe and relays its
``query`` / ``transaction`` postMessage events to POST /query, posting
the JSON answers back into the iframe.

Usage:
    from sqlstudio.playground import get_embed_html
    html = get_embed_html(studio_url="https://libsqlstudio.com")
"""

from __future__ import annotations

import html

_TEMPLATE = """<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>__TITLE__</title>
  <style>
    html, body {
      padding: 0;
      margin: 0;
      width: 100vw;
      height: 100vh;
    }

    iframe {
      width: 100vw;
      height: 100vh;
      overflow: hidden;
      border: 0;
    }
  </style>
</head>
<body>
  <script>
    function handler(e) {
      if (e.data.type !== "query" && e.data.type !== "transaction") return;
      fetch("__QUERY_URL__", {
        method: "post",
        headers: {
          "Content-Type": "application/json"
        },
        body: JSON.stringify(e.data)
      }).then(r => r.json()).then(r => {
        document.getElementById("editor").contentWindow.postMessage(r, "*");
      });
    }

    window.addEventListener("message", handler);
  </script>

  <iframe id="editor" src="__EMBED_URL__"></iframe>
</body>
</html>
"""


def get_embed_html(
    *,
    studio_url: str = "https://libsqlstudio.com",
    query_url: str = "/query",
    title: str = "SQL Studio",
) -> str:
    """
    Render the embedding page.

    Args:
        studio_url: Base URL of the hosted editor
        query_url: Endpoint the page forwards queries to
        title: Page title

    Returns:
        HTML string
    """
    embed_url = f"{studio_url.rstrip('/')}/embed/sqlite"
    page = _TEMPLATE.replace("__TITLE__", html.escape(title))
    page = page.replace("__QUERY_URL__", html.escape(query_url, quote=True))
    page = page.replace("__EMBED_URL__", html.escape(embed_url, quote=True))
    return page


__all__ = [
    "get_embed_html",
]
