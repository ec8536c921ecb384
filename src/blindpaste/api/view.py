"""
Document view.

The real interface is a client-side application; the server only reports
status and error strings, with caching disabled and strict browser policies.
"""

import html
from email.utils import formatdate

from fastapi.responses import HTMLResponse

from ..config import Settings
from ..core.dispatcher import DispatchResult

VIEW_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <meta name="robots" content="noindex">
    <title>{name}</title>
</head>
<body>
    <h1>{name}</h1>
    <p id="status">{status}</p>
    <p id="errormessage">{error}</p>
</body>
</html>"""


def view_headers(settings: Settings) -> dict:
    now = formatdate(usegmt=True)
    return {
        "Cache-Control": "no-store, no-cache, no-transform, must-revalidate",
        "Pragma": "no-cache",
        "Expires": now,
        "Last-Modified": now,
        "Vary": "Accept",
        "Content-Security-Policy": settings.main.cspheader,
        "Cross-Origin-Resource-Policy": "same-origin",
        "Cross-Origin-Embedder-Policy": "require-corp",
        "Permissions-Policy": "browsing-topics=()",
        "Referrer-Policy": "no-referrer",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "deny",
        "X-XSS-Protection": "1; mode=block",
    }


def render_view(settings: Settings, result: DispatchResult) -> HTMLResponse:
    """Render the status page for a dispatch result."""
    content = VIEW_TEMPLATE.format(
        name=html.escape(settings.main.name),
        status=html.escape(result.status),
        error=html.escape(result.error),
    )
    return HTMLResponse(content=content, headers=view_headers(settings))
