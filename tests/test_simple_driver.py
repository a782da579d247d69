"""SimpleDriver integration tests.

The simple backend cannot signal end of input, so these tests only use
programs that finish without it (echo, head -c, shell one-liners) or start
without input (stdin is /dev/null then).
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from porthole.drivers import SimpleDriver
from porthole.errors import CommandNotFound
from porthole.result import Result
from porthole.runtime.channel import IS_WINDOWS
from porthole.sources import RECEIVE

pytestmark = pytest.mark.skipif(IS_WINDOWS, reason="POSIX-specific test")


class TestExec:
    """Blocking calls over plain pipes."""

    @pytest.mark.asyncio
    async def test_echo(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec("echo", ["Hello", "world!"])
        assert result == Result(0, "Hello world!\n", None)

    @pytest.mark.asyncio
    async def test_no_input_reads_eof(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec("cat")
        assert result == Result(0, "", None)

    @pytest.mark.asyncio
    async def test_bounded_reader(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec("head", ["-c", "5"], in_="Hello world!")
        assert result.status == 0
        assert result.out == "Hello"

    @pytest.mark.asyncio
    async def test_separate_err(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec_shell("echo out; echo err >&2", err="text")
        assert result == Result(0, "out\n", "err\n")

    @pytest.mark.asyncio
    async def test_merged_err(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec_shell("echo out; echo err >&2", err="out", out="bytes")
        assert result.out == b"out\nerr\n"
        assert result.err is None

    @pytest.mark.asyncio
    async def test_discarded_out(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec_shell("echo hidden", out=None)
        assert result == Result(0, None, None)

    @pytest.mark.asyncio
    async def test_env(self, simple_driver: SimpleDriver):
        result = await simple_driver.exec_shell(
            'printf %s "$PORTHOLE_TEST_VALUE"', env={"PORTHOLE_TEST_VALUE": "plain"}
        )
        assert result.out == "plain"

    @pytest.mark.asyncio
    async def test_dir(self, simple_driver: SimpleDriver, tmp_path: Path):
        result = await simple_driver.exec("pwd", dir=tmp_path)
        assert Path(result.out.strip()).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_exit_status(self, simple_driver: SimpleDriver):
        assert (await simple_driver.exec_shell("exit 4")).status == 4

    @pytest.mark.asyncio
    async def test_command_not_found(self, simple_driver: SimpleDriver):
        with pytest.raises(CommandNotFound):
            await simple_driver.exec("definitely-not-a-real-program-xyz")


class TestSpawn:
    """Live sessions over plain pipes."""

    @pytest.mark.asyncio
    async def test_injected_input(self, simple_driver: SimpleDriver):
        handle = await simple_driver.spawn("head", ["-c", "5"], in_=RECEIVE, out="stream")
        await handle.send_input(b"Hel")
        # End of input cannot be signalled here; the empty chunk is ignored
        await handle.send_input(b"")
        await handle.send_input(b"lo, world")

        assert await asyncio.wait_for(handle.out.read_all(), 5) == b"Hello"
        result = await handle.await_result(timeout=5)
        assert result.status == 0

    @pytest.mark.asyncio
    async def test_stop(self, simple_driver: SimpleDriver):
        handle = await simple_driver.spawn_shell("sleep 30")
        assert handle.alive
        await asyncio.wait_for(handle.stop(), 5)
        result = await handle.await_result()
        assert result.status is None
        assert not handle.alive

    @pytest.mark.asyncio
    @pytest.mark.timeout(15)
    async def test_stop_with_unread_input(self, simple_driver: SimpleDriver):
        handle = await simple_driver.spawn("sleep", ["30"], in_=RECEIVE)
        await handle.send_input(b"x" * (4 * 1024 * 1024))
        await asyncio.sleep(0.1)

        await asyncio.wait_for(handle.stop(), 10)
        result = await handle.await_result(timeout=5)
        assert result.status is None
        assert not handle.alive
