# runs `man [section] command` and returns the page as plain text
# paging and terminal formatting are turned off through the environment; leftovers are stripped here

import asyncio
import logging
import os
import re
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

# "x\bx" (bold) and "_\bx" (underline) overstrike pairs
_OVERSTRIKE = re.compile(r".\x08")
_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


class ExternalToolError(Exception):
    stage = "man"


def _man_env() -> Dict[str, str]:
    env = dict(os.environ)
    env.update({
        "MANPAGER": "cat",
        "PAGER": "cat",
        "LC_ALL": "C.UTF-8",
        "LANG": "C.UTF-8",
    })
    return env


def man_command(command: str, section: Optional[str] = None) -> List[str]:
    args = ["man"]
    if section:
        args.append(section)
    args.append(command)
    return args


def clean_man_output(text: str) -> str:
    text = _ANSI_ESCAPE.sub("", text)
    return _OVERSTRIKE.sub("", text)


async def fetch_man_page(command: str, section: Optional[str] = None) -> str:
    args = man_command(command, section)
    logger.debug("running %s", " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_man_env(),
        )
    except OSError as e:
        raise ExternalToolError(f"Failed to execute man command. Is 'man' installed? ({e})") from e

    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        raise ExternalToolError(f"No manual entry for '{command}': {detail or f'man exited with {proc.returncode}'}")

    try:
        text = stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExternalToolError("Man page output is not valid UTF-8") from e

    text = clean_man_output(text)
    if not text.strip():
        raise ExternalToolError(f"No manual entry for '{command}': man produced no output")
    logger.debug("man page for %s: %d characters", command, len(text))
    return text
