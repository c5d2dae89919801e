import logging

from ohm.logging_filters import SanitizeFilter, redact_secrets


def _record(msg, *args):
    return logging.LogRecord("uvicorn.error", logging.ERROR, __file__, 1, msg, args, None)


def test_bearer_tokens_redacted():
    assert redact_secrets("Authorization: Bearer abc123") == "Authorization: Bearer <redacted>"
    assert redact_secrets("headers={'Authorization': 'sk-live-1'}") == "headers={'Authorization': '<redacted>'}"
    assert redact_secrets("nothing to see") == "nothing to see"


def test_html_error_page_summarized():
    page = "<!DOCTYPE html><html><head><title>502 Bad Gateway</title></head><body>" + "x" * 500 + "</body></html>"
    record = _record("[BYTEZ] error response (%s): %s", 502, page)
    assert SanitizeFilter().filter(record) is True
    assert record.getMessage().startswith("[BYTEZ] error response (502): 502 Bad Gateway [HTML")


def test_plain_messages_untouched():
    record = _record("[CRON] job %s completed", "abc")
    SanitizeFilter().filter(record)
    assert record.msg == "[CRON] job %s completed"
    assert record.args == ("abc",)
