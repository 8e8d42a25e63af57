# appsports/utils/commands.py
import subprocess
from typing import List, Optional

from appsports.core.errors import SourceUnavailable


def run_tool(cmd: List[str], timeout: float, no_match_status: Optional[int] = None) -> str:
    """
    Run an external utility and return its standard output.
    A silent exit with `no_match_status` is the tool saying "nothing found" and yields "".

    Raises:
        SourceUnavailable: binary missing, timeout, or non-zero exit status.
    """
    tool = cmd[0]
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            text=True,
            timeout=timeout
        )
    except FileNotFoundError:
        raise SourceUnavailable(tool, "command not found")
    except subprocess.TimeoutExpired:
        raise SourceUnavailable(tool, f"timed out after {timeout:g}s")
    except OSError as e:
        raise SourceUnavailable(tool, str(e))

    if result.returncode == no_match_status and not (result.stderr or "").strip():
        return ""

    if result.returncode != 0:
        stderr_lines = (result.stderr or "").strip().splitlines()
        detail = stderr_lines[-1] if stderr_lines else f"exit status {result.returncode}"
        raise SourceUnavailable(tool, detail)

    return result.stdout or ""
