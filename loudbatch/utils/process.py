"""
External process helpers for loudbatch
"""

import logging
import os
import subprocess
import time
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)


def c_locale_env(base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Environment pinned to the C locale so tools print '.' decimals"""
    env = dict(os.environ if base is None else base)
    env['LC_ALL'] = 'C'
    env['LANG'] = 'C'
    return env


def run_command(cmd: List[str], timeout: Optional[float] = None,
                merge_stderr: bool = True) -> Optional[bytes]:
    """
    Run a command to completion and capture its output

    Args:
        cmd: Command line
        timeout: Wall clock ceiling in seconds; the child is killed on expiry
        merge_stderr: Capture stderr into the same stream as stdout

    Returns:
        Raw output bytes, or None if the command could not be launched or
        timed out (partial output of a timed-out call is discarded)
    """
    start_time = time.time()
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            env=c_locale_env(),
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Timeout after {time.time() - start_time:.1f}s, terminated: {' '.join(cmd[:1])}")
        return None
    except OSError as e:
        logger.error(f"Failed to launch {cmd[0]}: {e}")
        return None

    logger.debug(f"{os.path.basename(cmd[0])} exited with {proc.returncode}, {len(proc.stdout)} bytes")
    return proc.stdout
