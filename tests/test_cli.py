"""
Tests for the command-line interface.

Credential loading and the executor factory are patched so no keys or
network access are needed.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from cli import cli
from src.longstory.credentials import CredentialPool
from src.longstory.executor import CallExecutor
from src.longstory.utils.errors import ServiceError
from tests.conftest import FakeTransport, RecordingSleep, make_chunk


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def style_file(tmp_path, style_example):
    path = tmp_path / "style.txt"
    path.write_text(style_example, encoding="utf-8")
    return str(path)


@pytest.fixture
def cli_transport():
    return FakeTransport(default=make_chunk(5000))


@pytest.fixture
def patched_services(cli_transport):
    pool = CredentialPool(["a", "b"])

    def fake_executor(pool_arg, config=None):
        return CallExecutor(pool_arg, cli_transport, sleep=RecordingSleep())

    with patch('cli.CredentialPool.load', return_value=pool), \
         patch('cli.create_executor', side_effect=fake_executor):
        yield pool


def generate_args(style_file, *extra):
    return [
        'generate',
        '--title', 'The Lighthouse',
        '--niche', 'horror',
        '--tone', 'dark',
        '--plot', 'A keeper hides the drowned.',
        '--style-file', style_file,
        '--target-length', '10000',
        *extra,
    ]


class TestGenerate:

    def test_writes_story_to_output(self, runner, style_file, patched_services, tmp_path, cli_transport):
        output = tmp_path / "story.txt"

        result = runner.invoke(cli, generate_args(style_file, '--output', str(output)))

        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8") == make_chunk(5000) + "\n\n" + make_chunk(5000)
        assert len(cli_transport.calls) == 2

    def test_prints_story_without_output(self, runner, style_file, patched_services):
        result = runner.invoke(cli, generate_args(style_file))
        assert result.exit_code == 0
        assert make_chunk(5000) in result.output

    def test_stream_progress(self, runner, style_file, patched_services, tmp_path):
        output = tmp_path / "story.txt"
        result = runner.invoke(cli, generate_args(style_file, '--stream', '--output', str(output)))
        assert result.exit_code == 0
        assert "Part 2/2 (50%)" in result.output
        assert output.exists()

    def test_generation_error_exits_non_zero(self, runner, style_file, patched_services, cli_transport):
        cli_transport.script = [ServiceError("Gemini request failed with HTTP 403", http_status=403)]
        result = runner.invoke(cli, generate_args(style_file))
        assert result.exit_code == 1
        assert "SERVICE_ERROR" in result.output

    def test_stream_error_exits_non_zero(self, runner, style_file, patched_services, cli_transport):
        cli_transport.script = [ServiceError("Invalid response shape: no generated text")]
        result = runner.invoke(cli, generate_args(style_file, '--stream'))
        assert result.exit_code == 1
        assert "Error in part 1" in result.output

    def test_invalid_target_length(self, runner, style_file, patched_services, cli_transport):
        args = generate_args(style_file)
        args[args.index('10000')] = '10'
        result = runner.invoke(cli, args)
        assert result.exit_code == 1
        assert "greater than or equal to 1000" in result.output
        assert cli_transport.calls == []


class TestKeys:

    def test_keys_table(self, runner):
        with patch('cli.CredentialPool.load', return_value=CredentialPool(["secret-a", "secret-b"])):
            result = runner.invoke(cli, ['keys'])
        assert result.exit_code == 0
        assert "key_1" in result.output
        assert "Total: 2 keys (2 available)" in result.output
        assert "secret-a" not in result.output

    def test_keys_json(self, runner):
        with patch('cli.CredentialPool.load', return_value=CredentialPool(["secret-a"])):
            result = runner.invoke(cli, ['keys', '--format', 'json'])
        assert json.loads(result.output)["total"] == 1

    def test_no_keys(self, runner):
        with patch('cli.CredentialPool.load', return_value=CredentialPool([])):
            result = runner.invoke(cli, ['keys'])
        assert result.exit_code == 1
        assert "No API keys configured" in result.output
