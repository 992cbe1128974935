import logging
import re

import pytest
from pydantic import ValidationError as PydanticValidationError

from shieldinput.models import SanitizationConfig
from shieldinput.sanitizer import SanitizationPolicy, resolve_policy, sanitize_html, sanitize_text

FORBIDDEN_MARKERS = ('<script', '<iframe', '<object', '<embed', '<form', '<input', '<button')
EVENT_ATTR_RE = re.compile(r"<[^>]*\son\w*\s*=", re.IGNORECASE)

PAYLOADS = [
    "<script>alert(1)</script>hello",
    "<SCRIPT SRC=//evil.example/x.js></SCRIPT>",
    "<iframe src='https://evil.example'></iframe>",
    "<object data='x.swf'></object><embed src='x.swf'>",
    "<form action='/steal'><input name='pk'><button>go</button></form>",
    "<img src=x onerror=alert(1)>",
    "<b onclick='steal()'>bold</b>",
    "<div style='color:red' onmouseover='x()'>hover</div>",
    "<span ONLOAD='x()' class='a'>text</span>",
    "<p>fine <em>text</em></p>",
    "a < b && c > d",
    "",
]


@pytest.mark.parametrize("policy", list(SanitizationPolicy))
@pytest.mark.parametrize("payload", PAYLOADS)
def test_forbidden_markup_never_survives(payload, policy):
    cleaned = sanitize_html(payload, policy)
    lowered = cleaned.lower()
    for marker in FORBIDDEN_MARKERS:
        assert marker not in lowered
    assert not EVENT_ATTR_RE.search(cleaned)


@pytest.mark.parametrize("policy", list(SanitizationPolicy))
@pytest.mark.parametrize("payload", PAYLOADS)
def test_sanitization_is_idempotent(payload, policy):
    once = sanitize_html(payload, policy)
    assert sanitize_html(once, policy) == once


def test_strict_removes_all_tags():
    assert sanitize_html("<p>Hello <b>world</b></p>") == "Hello world"


def test_strict_drops_script_content():
    assert sanitize_html("<script>alert(1)</script>John", "strict") == "John"


def test_basic_keeps_inline_formatting_only():
    cleaned = sanitize_html("<p><b>bold</b> <a href='/x'>link</a></p>", SanitizationPolicy.BASIC)
    assert cleaned == "<p><b>bold</b> link</p>"


def test_basic_strips_attributes():
    assert sanitize_html('<b class="x" onclick="steal()">hi</b>', "basic") == "<b>hi</b>"


def test_rich_keeps_style_on_div_but_not_event_handler():
    cleaned = sanitize_html('<div style="color:red" onclick="x()">hi</div>', SanitizationPolicy.RICH)
    assert cleaned == '<div style="color:red">hi</div>'


def test_rich_allows_class_and_id_anywhere():
    cleaned = sanitize_html('<h2 class="title" id="top">Header</h2>', "rich")
    assert 'class="title"' in cleaned
    assert 'id="top"' in cleaned


def test_rich_drops_style_outside_span_and_div():
    cleaned = sanitize_html('<p style="position:fixed">x</p>', "rich")
    assert cleaned == "<p>x</p>"


@pytest.mark.parametrize("value", [None, "", 42, ["<b>x</b>"], b"<b>x</b>"])
def test_non_string_or_empty_input_returns_empty(value):
    assert sanitize_html(value) == ""


def test_policy_name_is_case_insensitive():
    assert resolve_policy("BASIC") is SanitizationPolicy.BASIC.config


def test_unknown_policy_is_a_programming_error():
    with pytest.raises(ValueError):
        sanitize_html("<b>x</b>", "permissive")


def test_custom_config_cannot_allow_forbidden_tags():
    config = SanitizationConfig(
        tags={'b', 'iframe', 'Script', 'button'},
        attributes={'b': {'title', 'onClick'}, 'iframe': {'src'}},
    )
    assert config.tags == frozenset({'b'})
    assert config.attributes == {'b': frozenset({'title'})}

    cleaned = sanitize_html(
        '<iframe src="https://evil.example"></iframe><b title="t" onclick="x()">hi</b>',
        config,
    )
    assert cleaned == '<b title="t">hi</b>'


def test_policy_configs_are_frozen():
    with pytest.raises(PydanticValidationError):
        SanitizationPolicy.STRICT.config.tags = frozenset({'script'})


def test_blocked_tags_are_logged(caplog):
    caplog.set_level(logging.WARNING, logger="shieldinput.sanitizer")
    sanitize_html("<script>alert(1)</script><iframe></iframe>")
    assert "Blocked dangerous tag(s): iframe, script" in caplog.text


def test_event_handlers_are_logged(caplog):
    caplog.set_level(logging.WARNING, logger="shieldinput.sanitizer")
    sanitize_html('<img src="x" onerror="alert(1)">', "rich")
    assert "onerror" in caplog.text


def test_plain_text_logs_nothing(caplog):
    caplog.set_level(logging.WARNING, logger="shieldinput.sanitizer")
    sanitize_html("just some text")
    assert caplog.records == []


def test_sanitize_text_collapses_whitespace():
    assert sanitize_text("  hello\n\n   <b>world</b>\t ") == "hello world"


def test_sanitize_text_truncates():
    assert sanitize_text("a" * 20, max_length=10) == "a" * 10


def test_sanitize_text_trims_after_truncation():
    assert sanitize_text("abcd efgh", max_length=5) == "abcd"


@pytest.mark.parametrize("value", [None, "", 10])
def test_sanitize_text_empty_for_non_text(value):
    assert sanitize_text(value) == ""


def test_lone_surrogate_is_replaced_not_raised(caplog):
    caplog.set_level(logging.WARNING, logger="shieldinput.sanitizer")
    cleaned = sanitize_html("abc\ud800def")
    assert cleaned == "abc?def"
    assert sanitize_html(cleaned) == cleaned
    assert "cannot be encoded as UTF-8" in caplog.text


@pytest.mark.parametrize("policy", list(SanitizationPolicy))
def test_lone_surrogate_inside_markup(policy):
    cleaned = sanitize_html("<b>\udfff</b><script>x()</script>", policy)
    assert "\udfff" not in cleaned
    assert "<script" not in cleaned


def test_sanitize_text_with_lone_surrogate():
    assert sanitize_text("  a\ud800  b ") == "a? b"
