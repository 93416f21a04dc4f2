"""Running the external tools the lifecycle depends on."""

import subprocess
import sys


def run(cmd: list[str]) -> subprocess.CompletedProcess:
    """Run cmd to completion and return the result.

    Output is captured, stdin is closed so no tool ever waits on a prompt.
    OSError from launching the executable propagates to the caller.
    """
    print(f"loopimage: running {cmd}", file=sys.stderr)
    return subprocess.run(
        cmd,
        stdin=subprocess.DEVNULL,
        capture_output=True,
        text=True,
    )
