"""Tests for the command-line interface."""

import json

import pytest

from o2g import cli


@pytest.fixture
def note(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GHOST_URL", raising=False)
    monkeypatch.delenv("GHOST_ADMIN_API_KEY", raising=False)
    note_path = tmp_path / "Post.md"
    note_path.write_text(
        "---\ntitle: CLI Post\ntags: a, b\n---\n![cover](cover.png)\n\nHello [[World]]\n",
        encoding="utf-8",
    )
    return note_path


class TestPreview:

    def test_preview_prints_metadata_and_payload(self, note, capsys):
        cli.preview(str(note))
        out = capsys.readouterr().out

        assert "Title: CLI Post" in out
        assert "Tags: a, b" in out
        assert "Status: Draft (not visible to readers)" in out
        assert "Featured image: cover.png" in out

        payload = json.loads(out[out.index("{"):])
        assert payload["title"] == "CLI Post"
        assert "Hello World" in payload["html"]

    def test_preview_missing_note_exits(self, tmp_path, note):
        with pytest.raises(SystemExit) as exc_info:
            cli.preview(str(tmp_path / "missing.md"))
        assert exc_info.value.code == 1


class TestPublishCommand:

    def test_publish_without_credentials_exits(self, note, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.publish(str(note))
        assert exc_info.value.code == 1
        assert "Admin API key" in capsys.readouterr().err


class TestCommands:

    def test_registered_commands(self):
        assert set(cli.COMMANDS) == {"publish", "preview", "check", "version"}
