# --- Global log sanitizer: trims HTML error pages, hides credentials -------------
import logging, re

_HTML_SIG_RE = re.compile(r'(?is)<!DOCTYPE html|<html[^>]*>')
_TITLE_RE    = re.compile(r'(?is)<title[^>]*>(.*?)</title>')
_TAG_RE      = re.compile(r'(?is)<[^>]+>')
_SCRIPT_RE   = re.compile(r'(?is)<(script|style)[^>]*>.*?</\1>')
_SECRET_RE   = re.compile(r'(?i)(authorization["\']?\s*[:=]\s*["\']?(?:bearer\s+)?|bearer\s+)([^\s"\',}]+)')

def _strip_tags(s: str) -> str:
    s = _SCRIPT_RE.sub('', s)
    s = _TAG_RE.sub(' ', s)
    return re.sub(r'\s+', ' ', s).strip()

def _summarize_html(s: str, limit: int = 200) -> str:
    title = None
    m = _TITLE_RE.search(s)
    if m:
        title = _strip_tags(m.group(1))
    preview = title or _strip_tags(s)[:limit]
    return f"{preview} [HTML {len(s)} chars trimmed]"

def redact_secrets(s: str) -> str:
    return _SECRET_RE.sub(lambda m: m.group(1) + "<redacted>", s)

class SanitizeFilter(logging.Filter):
    """
    Image CDNs and gateways answer errors with whole HTML pages; replace those
    with a short summary. Bearer tokens / Authorization values are redacted.
    """
    def filter(self, record: logging.LogRecord) -> bool:
        try:
            msg = record.getMessage()
        except (TypeError, ValueError):
            return True
        if not isinstance(msg, str):
            return True
        new = msg
        m = _HTML_SIG_RE.search(new)
        if m and len(new) > 200:
            new = new[:m.start()] + _summarize_html(new[m.start():])
        new = redact_secrets(new)
        if new != msg:
            record.msg = new
            record.args = ()
        return True

def install() -> None:
    """Install once on common loggers (root + uvicorn family)."""
    for name in ("", "uvicorn", "uvicorn.error"):
        lg = logging.getLogger(name)
        if not any(isinstance(f, SanitizeFilter) for f in lg.filters):
            lg.addFilter(SanitizeFilter())
# --------------------------------------------------------------------------------
