import asyncio
import os
import sys

import pytest

from jsonnet_bundler.adapters.command.subprocess_runner import SubprocessCommandRunner
from jsonnet_bundler.adapters.errors import CommandNotFound


@pytest.mark.asyncio
async def test_run_captures_output(tmp_path):
    runner = SubprocessCommandRunner()
    result = await runner.run(
        [sys.executable, "-c", "import os, sys; print(os.getcwd()); sys.stderr.write('warn'); sys.exit(3)"],
        cwd=tmp_path,
    )
    assert result.exit_code == 3
    assert result.stdout.strip() == str(tmp_path.resolve())
    assert result.stderr == "warn"


@pytest.mark.asyncio
async def test_run_disables_terminal_prompt():
    runner = SubprocessCommandRunner(env={"JB_TEST": "1"})
    result = await runner.run(
        [sys.executable, "-c", "import os; print(os.environ['GIT_TERMINAL_PROMPT'], os.environ['JB_TEST'])"]
    )
    assert result.stdout.split() == ["0", "1"]


@pytest.mark.asyncio
async def test_missing_command():
    with pytest.raises(CommandNotFound):
        await SubprocessCommandRunner().run(["definitely-not-a-command-xyz"])


@pytest.mark.asyncio
async def test_cancelled_run_kills_child(tmp_path):
    pid_file = tmp_path / "pid"
    script = (
        "import os, sys, time; t = sys.argv[1]; f = open(t + '.tmp', 'w'); "
        "f.write(str(os.getpid())); f.close(); os.replace(t + '.tmp', t); time.sleep(30)"
    )
    task = asyncio.create_task(SubprocessCommandRunner().run([sys.executable, "-c", script, str(pid_file)]))
    for _ in range(200):
        if pid_file.exists():
            break
        await asyncio.sleep(0.05)
    pid = int(pid_file.read_text())

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
