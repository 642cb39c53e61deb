"""Tests for agent_trace.stream, agent_trace.runner and bin/format_trace.py."""

from __future__ import annotations

import io
import itertools
import json
import re
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from agent_trace.runner import AgentRun, build_command, run_agent
from agent_trace.stream import display_event, iter_rendered
from bin.format_trace import main


INIT = json.dumps({'type': 'system', 'subtype': 'init', 'session_id': 'abc123', 'model': 'sonnet'})
TEXT = json.dumps({'type': 'assistant', 'message': {'content': [{'type': 'text', 'text': 'Working on it'}]}})
RESULT = json.dumps({'type': 'result', 'is_error': False, 'duration_ms': 2000, 'total_cost_usd': 0.01})
HOOK = json.dumps({'type': 'system', 'subtype': 'hook_response'})


class FakeProcess:
    def __init__(self, lines: list[str], returncode: int = 0):
        self.stdout = iter(line + '\n' for line in lines)
        self.returncode = returncode
        self.terminated = False
        self.exited = False

    def poll(self):
        return self.returncode if self.exited else None

    def wait(self, timeout=None):
        self.exited = True
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.returncode = -9


# ---------------------------------------------------------------------------
# stream
# ---------------------------------------------------------------------------


class TestIterRendered:
    def test_skips_blank_non_json_and_empty_events(self):
        blocks = list(iter_rendered(['', '   ', 'npm warn deprecated', INIT, HOOK, TEXT]))
        assert len(blocks) == 2
        assert 'abc123' in blocks[0]
        assert 'Working on it' in blocks[1]


class TestDisplayEvent:
    def test_prints_rendered_block(self):
        out = io.StringIO()
        assert display_event(INIT, file=out) is True
        assert 'sonnet' in out.getvalue()

    def test_skipped_event_prints_nothing(self):
        out = io.StringIO()
        assert display_event('garbage', file=out) is False
        assert out.getvalue() == ''

    def test_defaults_to_stderr(self, capsys):
        display_event(INIT)
        assert 'abc123' in capsys.readouterr().err

    def test_timestamps(self):
        out = io.StringIO()
        display_event(TEXT, file=out, timestamps=True)
        assert re.match(r'^\[\d{2}:\d{2}:\d{2}\] 💭 Claude: Working on it', out.getvalue())


# ---------------------------------------------------------------------------
# runner
# ---------------------------------------------------------------------------


class TestBuildCommand:
    def test_basic_command(self):
        cmd = build_command('do stuff', claude_bin='claude')
        assert cmd == ['claude', '-p', 'do stuff', '--verbose', '--output-format', 'stream-json']

    def test_extra_args(self):
        cmd = build_command('task', args=['--max-turns', '3'], claude_bin='claude')
        assert cmd[-2:] == ['--max-turns', '3']

    @pytest.mark.parametrize('prompt', ['', '   ', None])
    def test_prompt_required(self, prompt):
        with pytest.raises(ValueError, match='prompt is required'):
            build_command(prompt)


class TestRunAgent:
    def test_streams_rendered_blocks(self, capsys):
        process = FakeProcess([INIT, 'npm warn something', '', HOOK, TEXT, RESULT])
        blocks: list[str] = []
        with patch('agent_trace.runner.subprocess.Popen', return_value=process) as popen:
            run = run_agent('hello', on_block=blocks.append, claude_bin='claude')

        assert popen.call_args.args[0][:3] == ['claude', '-p', 'hello']
        assert len(blocks) == 3
        assert 'Success (2.0s)' in blocks[-1]
        assert run.exit_code == 0
        assert run.lines == 5
        assert run.result['total_cost_usd'] == 0.01
        assert run.timed_out is False
        assert 'npm warn something' in capsys.readouterr().err

    def test_nonzero_exit_code(self):
        with patch('agent_trace.runner.subprocess.Popen', return_value=FakeProcess([INIT], returncode=2)):
            run = run_agent('hello')
        assert run.exit_code == 2
        assert run.result == {}

    def test_writes_log(self, tmp_path: Path):
        log_path = tmp_path / 'logs' / 'run.jsonl'
        with patch('agent_trace.runner.subprocess.Popen', return_value=FakeProcess([INIT, TEXT])):
            run_agent('hello', log_path=log_path)
        assert log_path.read_text().splitlines() == [INIT, TEXT]

    def test_timeout_terminates(self):
        process = FakeProcess([INIT, TEXT])
        clock = itertools.count(0, 10)
        with (
            patch('agent_trace.runner.subprocess.Popen', return_value=process),
            patch('agent_trace.runner.time.monotonic', side_effect=lambda: next(clock)),
        ):
            run = run_agent('hello', timeout=5)
        assert run.timed_out is True
        assert process.terminated is True
        assert run.lines == 0

    def test_missing_binary(self):
        with patch('agent_trace.runner.subprocess.Popen', side_effect=FileNotFoundError('claude')):
            with pytest.raises(FileNotFoundError):
                run_agent('hello')

    def test_popen_without_shell(self):
        with patch('agent_trace.runner.subprocess.Popen', return_value=FakeProcess([])) as popen:
            run_agent('hello', cwd='/tmp')
        kwargs = popen.call_args.kwargs
        assert kwargs.get('shell') is None
        assert kwargs['cwd'] == '/tmp'
        assert kwargs['stdout'] is subprocess.PIPE

    def test_callback_error_stops_process(self):
        process = FakeProcess([INIT, TEXT])

        def explode(block: str) -> None:
            raise RuntimeError('display failed')

        with patch('agent_trace.runner.subprocess.Popen', return_value=process):
            with pytest.raises(RuntimeError, match='display failed'):
                run_agent('hello', on_block=explode)
        assert process.terminated is True

    def test_finished_process_not_stopped(self):
        process = FakeProcess([INIT])
        with patch('agent_trace.runner.subprocess.Popen', return_value=process):
            run_agent('hello')
        assert process.terminated is False

    def test_log_directory_created_before_launch(self, tmp_path: Path):
        log_path = tmp_path / 'nested' / 'logs' / 'run.jsonl'

        def launch(*args, **kwargs):
            assert log_path.parent.is_dir()
            return FakeProcess([INIT])

        with patch('agent_trace.runner.subprocess.Popen', side_effect=launch):
            run_agent('hello', log_path=log_path)
        assert log_path.read_text() == INIT + '\n'

    def test_log_error_does_not_launch(self, tmp_path: Path):
        blocker = tmp_path / 'logs'
        blocker.write_text('not a directory')
        with patch('agent_trace.runner.subprocess.Popen') as popen:
            with pytest.raises(OSError):
                run_agent('hello', log_path=blocker / 'run.jsonl')
        popen.assert_not_called()

    def test_missing_binary_with_log(self, tmp_path: Path):
        log_path = tmp_path / 'run.jsonl'
        with patch('agent_trace.runner.subprocess.Popen', side_effect=FileNotFoundError('claude')):
            with pytest.raises(FileNotFoundError):
                run_agent('hello', log_path=log_path)
        assert log_path.read_text() == ''


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestCli:
    def test_replay_file(self, tmp_path: Path, capsys):
        trace = tmp_path / 'trace.jsonl'
        trace.write_text('\n'.join([INIT, 'not json', TEXT, RESULT]) + '\n')
        assert main([str(trace)]) == 0
        out = capsys.readouterr().out
        assert 'abc123' in out
        assert 'Working on it' in out
        assert 'Success (2.0s)' in out
        assert 'not json' not in out

    def test_replay_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr('sys.stdin', io.StringIO(INIT + '\n'))
        assert main([]) == 0
        assert 'sonnet' in capsys.readouterr().out

    def test_missing_file(self, tmp_path: Path, capsys):
        assert main([str(tmp_path / 'missing.jsonl')]) == 1
        assert 'Error:' in capsys.readouterr().err

    def test_live_forwards_extra_args(self):
        with patch('bin.format_trace.run_agent', return_value=AgentRun(exit_code=0)) as mock_run:
            assert main(['--prompt', 'hi', '--', '--model', 'opus']) == 0
        assert mock_run.call_args.args[0] == 'hi'
        assert mock_run.call_args.kwargs['args'] == ['--model', 'opus']

    def test_live_exit_code(self):
        with patch('bin.format_trace.run_agent', return_value=AgentRun(exit_code=3)):
            assert main(['--prompt', 'hi']) == 3

    def test_live_timeout(self, capsys):
        with patch('bin.format_trace.run_agent', return_value=AgentRun(exit_code=0, timed_out=True)):
            assert main(['--prompt', 'hi', '--timeout', '7']) == 1
        assert 'timed out after 7s' in capsys.readouterr().err

    def test_live_missing_binary(self, capsys):
        with patch('bin.format_trace.run_agent', side_effect=FileNotFoundError('claude')):
            assert main(['--prompt', 'hi']) == 1
        assert 'Error:' in capsys.readouterr().err

    def test_extra_args_require_prompt(self):
        with pytest.raises(SystemExit) as exc:
            main(['--', '--model', 'opus'])
        assert exc.value.code == 2

    def test_blank_prompt_rejected(self):
        with pytest.raises(SystemExit) as exc:
            main(['--prompt', '  '])
        assert exc.value.code == 2
