from __future__ import annotations

from efiledb.utils.html_text import html_to_text, text_to_html


def test_text_to_html_paragraphs_and_breaks():
    assert text_to_html("Dear Sir,\n\nPlease approve.\nRegards") == "<p>Dear Sir,</p><p>Please approve.<br>Regards</p>"
    assert text_to_html("a < b") == "<p>a &lt; b</p>"
    assert text_to_html("") == ""


def test_markup_is_left_alone():
    markup = "<p>Already <b>formatted</b></p>"
    assert text_to_html(markup) == markup


def test_html_to_text_flattens():
    assert html_to_text("<p>Road&nbsp;repair</p><p>Block<br>7</p>") == "Road repair Block 7"
    assert html_to_text(None) == ""
