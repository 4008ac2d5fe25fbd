"""
Named HTML pages rendered instead of a JSON error envelope.

Form trigger URLs are opened by people in a browser, so a JSON body is useless there.
Context values are HTML-escaped before substitution.
"""

import html
from string import Template
from typing import Any

FORM_TRIGGER_404 = "form-trigger-404"
FORM_TRIGGER_409 = "form-trigger-409"

_LAYOUT = Template("""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>$title</title>
    <style>
      body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif; background: #f5f5f5; color: #333; }
      .card { max-width: 448px; margin: 15vh auto; padding: 32px; background: #fff; border-radius: 8px; text-align: center; }
      h1 { font-size: 20px; }
      p { font-size: 14px; color: #666; }
    </style>
  </head>
  <body>
    <div class="card">
      <h1>$heading</h1>
      <p>$body</p>
    </div>
  </body>
</html>
""")


def _form_trigger_404(is_test_webhook: bool = False) -> dict[str, str]:
    if is_test_webhook:
        body = (
            "The requested test form is not active. Open the workflow and click "
            "'Execute workflow' to listen for a test submission."
        )
    else:
        body = "The requested form is not active. Make sure its workflow is published."
    return {"title": "Form not found", "heading": "Problem loading form", "body": body}


def _form_trigger_409(message: str = "") -> dict[str, str]:
    return {"title": "Form conflict", "heading": "Problem submitting form", "body": message}


PAGES = {
    FORM_TRIGGER_404: _form_trigger_404,
    FORM_TRIGGER_409: _form_trigger_409,
}


def render_page(name: str, context: dict[str, Any] | None = None) -> str:
    """
    Render the page registered under `name`.

    Raises:
        KeyError: when no page has that name.
    """
    build = PAGES[name]
    fields = build(**(context or {}))
    return _LAYOUT.substitute({key: html.escape(str(value)) for key, value in fields.items()})


__all__ = ["FORM_TRIGGER_404", "FORM_TRIGGER_409", "PAGES", "render_page"]
