"""
Script adapter: runs a local executable per tool call.

The command line is ``<scriptPath...> <action>``. Arguments arrive as JSON
on stdin and in ``TOOLWEAVE_TOOL_ARGS``; the action name is also exported
as ``TOOLWEAVE_TOOL_ACTION``. Exit code zero means success and stdout
(JSON if it parses, raw text otherwise) becomes the result data.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from toolweave.tools.adapters.base import (
    CallTimer,
    error_message,
    parse_text_payload,
    resolve_timeout_ms,
    timeout_message,
)
from toolweave.tools.schema import ToolCallResult, ToolHandler, ToolManifest, namespaced

logger = logging.getLogger(__name__)

ARGS_ENV_VAR = "TOOLWEAVE_TOOL_ARGS"
ACTION_ENV_VAR = "TOOLWEAVE_TOOL_ACTION"

# Scripts run in their own session so a timeout can kill the whole process group.
_NEW_SESSION = os.name == "posix"
# Upper bound on reaping a killed script
KILL_WAIT_S = 1.0

# Same signature as asyncio.create_subprocess_exec
SpawnFn = Callable[..., Awaitable[Any]]


@dataclass
class ScriptRun:
    """Captured outcome of one script invocation."""

    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    timed_out: bool = False
    spawn_error: Optional[str] = None


def build_command(script_path: str, action_name: str, base_dir: Optional[Path] = None) -> List[str]:
    """Split ``script_path`` shell-style and append the action name."""
    argv = shlex.split(script_path)
    if base_dir is not None and argv:
        executable = argv[0]
        if "/" in executable and not Path(executable).is_absolute():
            argv[0] = str(Path(base_dir) / executable)
    return argv + [action_name]


def build_env(action_name: str, args: Dict[str, Any], script_env: Dict[str, str]) -> Dict[str, str]:
    return {
        **os.environ,
        ACTION_ENV_VAR: action_name,
        ARGS_ENV_VAR: json.dumps(args),
        **script_env,
    }


async def _terminate(process: Any) -> None:
    """Kill the script and every process it started, then reap it."""
    pid = getattr(process, "pid", None)
    try:
        if _NEW_SESSION and pid:
            os.killpg(pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass

    try:
        await asyncio.wait_for(process.wait(), timeout=KILL_WAIT_S)
    except asyncio.TimeoutError:
        logger.warning("Script process %s did not exit after being killed", pid)


async def run_script(
    script_path: str,
    action_name: str,
    args: Dict[str, Any],
    env: Dict[str, str],
    timeout_ms: int,
    spawn: Optional[SpawnFn] = None,
    base_dir: Optional[Path] = None,
) -> ScriptRun:
    """Run the script once, killing it if it outlives ``timeout_ms``."""
    spawn = spawn or asyncio.create_subprocess_exec
    argv = build_command(script_path, action_name, base_dir)
    payload = json.dumps(args).encode()

    try:
        process = await spawn(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=build_env(action_name, args, env),
            cwd=str(base_dir) if base_dir is not None else None,
            start_new_session=_NEW_SESSION,
        )
    except (OSError, ValueError) as exc:
        logger.warning("Failed to start script %s: %s", argv[0] if argv else script_path, exc)
        return ScriptRun(spawn_error=error_message(exc))

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(payload), timeout=timeout_ms / 1000
        )
    except asyncio.TimeoutError:
        logger.debug("Script %s timed out after %dms, killing", script_path, timeout_ms)
        await _terminate(process)
        return ScriptRun(timed_out=True)

    return ScriptRun(
        stdout=(stdout or b"").decode(errors="replace"),
        stderr=(stderr or b"").decode(errors="replace"),
        exit_code=process.returncode,
    )


def create_script_handler(
    manifest: ToolManifest,
    action_name: str,
    spawn: Optional[SpawnFn] = None,
    base_dir: Optional[Path] = None,
    default_timeout_ms: Optional[int] = None,
) -> ToolHandler:
    """Build the coroutine handler for one action of a script manifest."""
    script_path = manifest.script_path or ""
    timeout_ms = resolve_timeout_ms(manifest, default_timeout_ms)
    prefixed_name = namespaced(manifest.id, action_name)

    async def handler(args: Dict[str, Any]) -> ToolCallResult:
        timer = CallTimer(manifest.id, prefixed_name)
        try:
            run = await run_script(
                script_path,
                action_name,
                args,
                manifest.script_env,
                timeout_ms,
                spawn=spawn,
                base_dir=base_dir,
            )
        except Exception as exc:
            logger.debug("%s failed: %s", prefixed_name, exc)
            return timer.fail(error_message(exc))

        if run.spawn_error is not None:
            return timer.fail(f"Failed to start script: {run.spawn_error}")
        if run.timed_out:
            return timer.fail(timeout_message(timeout_ms))
        if run.exit_code != 0:
            return timer.fail(run.stderr.strip() or f"Script exited with code {run.exit_code}")

        return timer.ok(parse_text_payload(run.stdout.strip()))

    return handler


def create_script_adapter(
    manifest: ToolManifest,
    spawn: Optional[SpawnFn] = None,
    base_dir: Optional[Path] = None,
    default_timeout_ms: Optional[int] = None,
) -> Dict[str, ToolHandler]:
    """Map every namespaced action of ``manifest`` to a script handler."""
    return {
        namespaced(manifest.id, action.name): create_script_handler(
            manifest, action.name, spawn, base_dir, default_timeout_ms
        )
        for action in manifest.tools
    }
