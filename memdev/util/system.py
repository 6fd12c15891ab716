import os
import shlex
import subprocess
from pathlib import Path


def get_cache_directory() -> Path:
    """
    Return the memdev cache directory, creating it if needed.

    Raises OSError when the directory cannot be created.
    """
    xdg_cache = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache:
        cache_dir = Path(xdg_cache) / "memdev"
    else:
        cache_dir = Path.home() / ".cache/memdev"

    if not os.path.exists(cache_dir):
        os.makedirs(cache_dir, mode=0o700)

    return cache_dir


def run_piped_command(
    command: str = "",
) -> tuple[int, str, str] | tuple[int, None, FileNotFoundError]:
    """
    Run a shell-like command with pipes using subprocess.

    Args:
        command (str): The pipeline command, e.g. "echo hi | grep h".

    Returns:
        (return_code, stdout, stderr), or (1, None, error) when a binary
        in the pipeline could not be found.
    """
    # Split pipeline into stages
    parts = [shlex.split(cmd.strip()) for cmd in command.split("|")]
    processes: list[subprocess.Popen[bytes]] = []
    prev_stdout = None

    for i, part in enumerate(parts):
        try:
            proc = subprocess.Popen(
                part,
                stdin=prev_stdout,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE if i == len(parts) - 1 else subprocess.DEVNULL,
            )

            if prev_stdout:
                prev_stdout.close()
            prev_stdout = proc.stdout
            processes.append(proc)
        except FileNotFoundError as e:
            return 1, None, e

    stdout, stderr = processes[-1].communicate()
    for p in processes[:-1]:
        _ = p.wait()

    return (
        processes[-1].returncode,
        stdout.decode(errors="replace").rstrip("\n"),
        stderr.decode(errors="replace").strip(),
    )
