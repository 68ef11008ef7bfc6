"""Tests for line formatting and format file loading."""

import json

import pytest

from logtail.formatter import Formatter, load_format_file
from logtail.models import DEFAULT_TEMPLATE, StructuredFormat, TemplateFormat

from .helpers import make_event


class TestStructured:
    def test_one_json_line_per_event(self, sample_event):
        line = Formatter(StructuredFormat()).format(sample_event)
        assert "\n" not in line
        decoded = json.loads(line)
        assert decoded["id"] == "AQAAAYx1"
        assert decoded["attributes"]["tags"]["pod_name"] == "web-1"

    def test_embedded_newlines_stay_escaped(self):
        event = make_event("1", 0, message="line one\nline two")
        line = Formatter(StructuredFormat()).format(event)
        assert "\n" not in line
        assert json.loads(line)["attributes"]["message"] == "line one\nline two"


class TestTemplate:
    def test_default_template(self, sample_event):
        line = Formatter(TemplateFormat()).format(sample_event)
        assert line == "2024-01-15T10:30:00.123Z info User logged in"

    def test_missing_slot_renders_empty(self):
        event = make_event("1", message="no status here")
        line = Formatter(TemplateFormat(paths=["attributes.status", "attributes.message"])).format(event)
        assert line == " no status here"

    def test_non_string_values(self, sample_event):
        formatter = Formatter(
            TemplateFormat(paths=["attributes.attributes.http.status_code", "attributes.attributes.duration"])
        )
        assert formatter.format(sample_event) == "200 45.2"

    def test_newlines_escaped(self):
        event = make_event("1", message="first\r\nsecond")
        line = Formatter(TemplateFormat(paths=["attributes.message"])).format(event)
        assert line == "first\\r\\nsecond"

    def test_formatting_is_repeatable(self, sample_event):
        formatter = Formatter(TemplateFormat())
        assert formatter.format(sample_event) == formatter.format(sample_event)

    def test_invalid_template_path(self):
        with pytest.raises(ValueError):
            Formatter(TemplateFormat(paths=["attributes..message"]))


class TestLoadFormatFile:
    def test_none_gives_default(self):
        assert load_format_file(None).paths == list(DEFAULT_TEMPLATE)

    def test_reads_paths_skipping_blank_lines(self, tmp_path):
        path = tmp_path / "format.txt"
        path.write_text("attributes.service\n\n  attributes.message  \n", encoding="utf-8")
        assert load_format_file(path).paths == ["attributes.service", "attributes.message"]

    def test_empty_file_gives_default(self, tmp_path):
        path = tmp_path / "format.txt"
        path.write_text("\n  \n", encoding="utf-8")
        assert load_format_file(path).paths == list(DEFAULT_TEMPLATE)

    def test_invalid_line_rejected(self, tmp_path):
        path = tmp_path / "format.txt"
        path.write_text("attributes.\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_format_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_format_file(tmp_path / "absent.txt")
