"""Delayed restart of a supervised process through the supervisor's CLI."""

import asyncio
import shlex

import structlog

logger = structlog.get_logger()


class ProcessRestarter:
    """Runs ``<command> <key>`` after a fixed delay, in the background."""

    def __init__(self, command: str = "pm2 restart", delay: float = 1.0):
        self.command = shlex.split(command)
        self.delay = delay
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, key: str) -> asyncio.Task:
        task = asyncio.create_task(self._restart(key), name=f"restart:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Process restart scheduled", key=key, delay=self.delay)
        return task

    async def _restart(self, key: str) -> int | None:
        await asyncio.sleep(self.delay)
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                key,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
        except OSError as e:
            logger.error("Process restart failed", key=key, error=str(e))
            return None

        logger.info(
            "Process restart command finished",
            key=key,
            returncode=proc.returncode,
            stdout=stdout.decode(errors="replace").strip(),
            stderr=stderr.decode(errors="replace").strip(),
        )
        return proc.returncode
