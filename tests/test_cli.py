"""Tests for cli/ and main.py - argument parsing, rendering and commands."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx
import pytest

from cli.argument_parser import build_parser, parse_args
from cli.display import display_chapters, display_failure, format_wait
from main import build_services, run_chapters, run_process, run_quota
from modules.error_handler import FailureKind, LLMResult
from modules.local_storage import MemoryStore
from modules.types import ChapterMetadata
from tests.conftest import make_settings


class TestArgumentParser:

    def test_process_defaults(self, temp_dir: Path):
        source = temp_dir / "chapter.txt"
        source.write_text("text", encoding="utf-8")

        args = parse_args(["process", str(source)])

        assert args.command == "process"
        assert args.input_file == source
        assert args.content_type == "novel"
        assert args.provider is None
        assert args.output is None
        assert args.json is False

    def test_process_options(self, temp_dir: Path):
        source = temp_dir / "scene.txt"
        source.write_text("EXT. DOCK", encoding="utf-8")

        args = parse_args([
            "-v", "process", str(source),
            "--content-type", "screenplay",
            "--provider", "claude",
            "--output", str(temp_dir / "out.fountain"),
        ])

        assert args.verbose is True
        assert args.content_type == "screenplay"
        assert args.provider == "claude"

    def test_missing_input_file_rejected(self, temp_dir: Path):
        with pytest.raises(SystemExit):
            parse_args(["process", str(temp_dir / "absent.txt")])

    def test_unknown_provider_rejected(self, temp_dir: Path):
        source = temp_dir / "chapter.txt"
        source.write_text("text", encoding="utf-8")
        with pytest.raises(SystemExit):
            parse_args(["process", str(source), "--provider", "openrouter"])

    def test_quota_commands(self):
        status = parse_args(["quota", "status", "--model", "gemini-2.5-pro"])
        reset = parse_args(["quota", "reset", "--daily", "-y"])

        assert (status.command, status.quota_command, status.model) == ("quota", "status", "gemini-2.5-pro")
        assert reset.daily is True
        assert reset.yes is True
        assert reset.model is None

    def test_chapters_requires_project(self):
        with pytest.raises(SystemExit):
            parse_args(["chapters", "  "])
        assert parse_args(["chapters", "p1"]).project_id == "p1"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestDisplay:

    @pytest.mark.parametrize(
        "ms, expected",
        [(0, "0s"), (999, "1s"), (45_000, "45s"), (60_000, "1m"), (61_000, "2m"), (3 * 3_600_000, "3h"), (3_900_000, "1h 5m")],
    )
    def test_format_wait(self, ms, expected):
        assert format_wait(ms) == expected

    def test_quota_failure_guidance(self, capsys):
        display_failure(LLMResult.fail(
            FailureKind.QUOTA_EXCEEDED,
            "Daily quota exceeded (50/50). Try again in 5h",
            daily_requests=50,
            daily_quota=50,
            alternative_model="gemini-2.5-flash",
        ))

        captured = capsys.readouterr()
        assert "Daily quota exceeded" in captured.err
        assert "50/50" in captured.out
        assert "gemini-2.5-flash" in captured.out

    def test_chapter_listing(self, capsys):
        display_chapters(
            [
                ChapterMetadata(id="a", project_id="p", title="Opening", chapter_order=1),
                ChapterMetadata(id="b", project_id="p", title="Draft", processing_count=2),
            ],
            unprocessed=1,
        )

        out = capsys.readouterr().out
        assert "2 total, 1 unprocessed" in out
        assert "Opening" in out
        assert "Draft" in out

    def test_empty_chapter_listing(self, capsys):
        display_chapters([], unprocessed=0)
        assert "No chapters found" in capsys.readouterr().out


class TestCommands:

    @pytest.fixture
    def services(self, http_client):
        settings = make_settings(
            {"openai": "sk"},
            {"supabase": {"url": "https://demo.supabase.co", "anon_key": "anon"}},
        )
        return build_services(settings, client=http_client, storage=MemoryStore())

    def test_build_services(self, services):
        assert services.router.governor is services.governor
        assert services.chapter_cache is not None
        assert services.chapter_cache.max_size == 5

    def test_no_chapter_cache_without_supabase(self, http_client):
        services = build_services(make_settings(), client=http_client, storage=MemoryStore())
        assert services.chapter_cache is None

    @pytest.mark.asyncio
    async def test_process_writes_output(self, services, transport, temp_dir: Path):
        source = temp_dir / "chapter.txt"
        source.write_text("It was night.", encoding="utf-8")
        output = temp_dir / "out" / "script.fountain"
        transport.queue(httpx.Response(200, json={"choices": [{"message": {"content": " NARRATOR: Night. "}}]}))

        code = await run_process(parse_args(["process", str(source), "--output", str(output)]), services)

        assert code == 0
        assert output.read_text(encoding="utf-8") == "NARRATOR: Night."

    @pytest.mark.asyncio
    async def test_process_failure_exit_code(self, services, transport, temp_dir: Path):
        source = temp_dir / "chapter.txt"
        source.write_text("It was night.", encoding="utf-8")
        transport.queue(httpx.Response(500, json={"error": {"message": "boom"}}))

        code = await run_process(parse_args(["process", str(source)]), services)

        assert code == 1

    @pytest.mark.asyncio
    async def test_process_undecodable_input(self, services, transport, temp_dir: Path, capsys):
        source = temp_dir / "chapter.txt"
        source.write_bytes(b"\xff\xfe caf\xe9")

        code = await run_process(parse_args(["process", str(source)]), services)

        assert code == 1
        assert "Could not read input" in capsys.readouterr().err
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_process_json_output(self, services, transport, temp_dir: Path, capsys):
        source = temp_dir / "chapter.txt"
        source.write_text("It was night.", encoding="utf-8")
        transport.queue(httpx.Response(500, json={"error": {"message": "boom"}}))

        code = await run_process(parse_args(["process", str(source), "--json"]), services)

        assert code == 1
        payload = json.loads(capsys.readouterr().out)
        assert payload["success"] is False
        assert payload["kind"] == "provider_http_error"
        assert payload["details"] == {"status_code": 500}

    def test_quota_status(self, services, capsys):
        code = run_quota(parse_args(["quota", "status"]), services)

        assert code == 0
        assert "gemini-2.5-flash" in capsys.readouterr().out

    def test_quota_status_json(self, services, capsys):
        services.governor.record_request("gemini-2.5-flash")

        code = run_quota(parse_args(["quota", "status", "--json"]), services)

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["model"] == "gemini-2.5-flash"
        assert payload["current_requests"] == 1
        assert payload["daily_requests"] == 1
        assert payload["can_request"] is True
        assert payload["message"]

    def test_quota_reset_daily(self, services):
        services.governor.record_request("gemini-2.5-flash")

        code = run_quota(parse_args(["quota", "reset", "--daily", "--yes"]), services)

        assert code == 0
        assert services.governor.requests == []

    def test_quota_reset_declined(self, services, monkeypatch):
        services.governor.record_request("gemini-2.5-flash")
        monkeypatch.setattr("builtins.input", lambda _prompt: "n")

        run_quota(parse_args(["quota", "reset"]), services)

        assert len(services.governor.requests) == 1

    @pytest.mark.asyncio
    async def test_chapters(self, services, transport, capsys):
        transport.queue(httpx.Response(200, json=[
            {"id": "a", "project_id": "p1", "title": "Opening", "chapter_order": 1, "processing_count": 0},
        ]))

        code = await run_chapters(parse_args(["chapters", "p1"]), services)

        assert code == 0
        assert "Opening" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_chapters_without_supabase(self, http_client, capsys):
        services = build_services(make_settings(), client=http_client, storage=MemoryStore())

        code = await run_chapters(argparse.Namespace(project_id="p1"), services)

        assert code == 1
        assert "Supabase is not configured" in capsys.readouterr().err
