"""End-to-end tests for the command line entry point."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from logtail import cli
from logtail.errors import FatalQueryError
from logtail.models import SearchPage

from .helpers import FakeQueryClient, make_event


@pytest.fixture
def credentials(monkeypatch):
    monkeypatch.setenv("DD_API_KEY", "api-123")
    monkeypatch.setenv("DD_APP_KEY", "app-456")


def use_client(monkeypatch, handler):
    client = FakeQueryClient(handler)
    monkeypatch.setattr(cli, "build_client", lambda config: client)
    return client


class TestParseArgs:
    def test_only_given_options_are_overrides(self):
        overrides, config_path = cli.parse_args(["service:web"])
        assert overrides == {"query": "service:web"}
        assert config_path is None

    def test_full_option_set(self):
        overrides, config_path = cli.parse_args(
            [
                "service:web",
                "-d",
                "api.datadoghq.com",
                "-k",
                "attributes.tags.pod_name",
                "-f",
                "rest.log",
                "-s",
                "-H",
                "120",
                "-t",
                "2021-01-01T00:00:00Z",
                "--config",
                "logtail.yaml",
                "-v",
            ]
        )
        assert overrides == {
            "query": "service:web",
            "domain": "api.datadoghq.com",
            "split_key": "attributes.tags.pod_name",
            "default_output": "rest.log",
            "structured": True,
            "history_seconds": 120,
            "from_timestamp": datetime(2021, 1, 1, tzinfo=timezone.utc),
            "log_level": "DEBUG",
        }
        assert config_path == Path("logtail.yaml")

    def test_bad_timestamp_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.parse_args(["q", "--from", "last tuesday"])
        assert exc_info.value.code == 2

    def test_output_mode_choices(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["q", "-o", "socket"])


def test_one_shot_to_stdout(monkeypatch, capsys, credentials):
    client = use_client(
        monkeypatch,
        lambda *a: SearchPage(events=[make_event("e1", 10, message="hello"), make_event("e2", 20, message="bye")]),
    )

    code = cli.main(["service:web", "-o", "stdout", "-s", "-t", "2024-01-15T10:00:00Z", "-H", "3600"])

    assert code == cli.EXIT_OK
    lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["id"] for line in lines] == ["e1", "e2"]
    assert len(client.calls) == 1
    assert client.closed


def test_file_mode_writes_partitions(monkeypatch, tmp_path, credentials):
    use_client(
        monkeypatch,
        lambda *a: SearchPage(events=[make_event("e1", 10, pod="web-1", status="info", message="hi")]),
    )

    code = cli.main(
        [
            "q",
            "-k",
            "attributes.pod",
            "--output-dir",
            str(tmp_path),
            "-t",
            "2024-01-15T10:00:00Z",
        ]
    )

    assert code == cli.EXIT_OK
    assert (tmp_path / "web-1").read_text(encoding="utf-8") == "2024-01-15T10:00:10Z info hi\n"


def test_fatal_error_exit_code(monkeypatch, capsys, credentials):
    def handler(*args):
        raise FatalQueryError("HTTP 403: Forbidden", kind="auth", status=403)

    use_client(monkeypatch, handler)

    code = cli.main(["q", "-o", "stdout", "-t", "2024-01-15T10:00:00Z"])

    assert code == cli.EXIT_FATAL
    captured = capsys.readouterr()
    assert "error [auth]: HTTP 403: Forbidden" in captured.err
    assert captured.out == ""


def test_missing_credentials_exit_code(monkeypatch, capsys):
    monkeypatch.delenv("DD_API_KEY", raising=False)
    monkeypatch.setenv("DD_APP_KEY", "app-456")

    code = cli.main(["q"])

    assert code == cli.EXIT_CONFIG
    assert "error [config]: Expected DD_API_KEY env var" in capsys.readouterr().err


def test_unreadable_format_file_exit_code(monkeypatch, tmp_path, capsys, credentials):
    use_client(monkeypatch, lambda *a: SearchPage())

    code = cli.main(["q", "--format-file", str(tmp_path / "absent.txt"), "-t", "2024-01-15T10:00:00Z"])

    assert code == cli.EXIT_CONFIG
    assert "error [config]" in capsys.readouterr().err


def test_pagination_overflow_exit_code(monkeypatch, capsys, credentials):
    monkeypatch.setenv("LOGTAIL_MAX_PAGES", "2")
    use_client(monkeypatch, lambda i, *a: SearchPage(events=[make_event(str(i))], next_cursor=f"c{i}"))

    code = cli.main(["q", "-o", "stdout", "-t", "2024-01-15T10:00:00Z"])

    assert code == cli.EXIT_FATAL
    assert "error [overflow]: query still paginating after 2 pages" in capsys.readouterr().err


def test_future_start_is_config_error(capsys, credentials):
    code = cli.main(["q", "-t", "2999-01-01T00:00:00Z"])

    assert code == cli.EXIT_CONFIG
    assert "error [config]" in capsys.readouterr().err
