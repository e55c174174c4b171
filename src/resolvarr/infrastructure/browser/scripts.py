"""JavaScript snippets evaluated inside provider pages."""

from __future__ import annotations

# Reads the attributes providers hash into their key material. The canvas
# slice skips the "data:image/png;base64," prefix (22 chars).
FINGERPRINT_SCRIPT = """
() => {
  let canvas = "";
  try {
    const c = document.createElement("canvas");
    c.width = 200;
    c.height = 50;
    const ctx = c.getContext("2d");
    ctx.textBaseline = "top";
    ctx.font = "14px Arial";
    ctx.fillText("fp", 2, 2);
    canvas = c.toDataURL().substring(22, 50);
  } catch (e) {
    canvas = "";
  }
  return {
    screen_width: screen.width,
    screen_height: screen.height,
    color_depth: screen.colorDepth,
    user_agent: navigator.userAgent,
    platform: navigator.platform,
    language: navigator.language,
    timezone_offset: new Date().getTimezoneOffset(),
    canvas: canvas,
  };
}
"""

# Resolves to the trimmed text (or attribute) of the first match once it
# is non-empty; null keeps wait_for_function polling.
SELECTOR_VALUE_SCRIPT = """
([selector, attribute]) => {
  const el = document.querySelector(selector);
  if (!el) return null;
  const v = attribute ? el.getAttribute(attribute) : el.textContent;
  return v && v.trim() ? v.trim() : null;
}
"""


def expression_value_script(expression: str) -> str:
    """Wrap a JS expression so empty results keep the wait polling."""
    return (
        "() => { const v = ("
        + expression
        + "); return (v === undefined || v === null || v === '') ? null : v; }"
    )
