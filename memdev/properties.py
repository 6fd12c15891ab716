import logging
from typing import Iterable, Iterator, Tuple

from memdev.errors import PropertySourceError
from memdev.util import system

logger = logging.getLogger(__name__)

DMI_SYSPATH = "/sys/devices/virtual/dmi/id"

PropertySource = Iterable[Tuple[str, str]]


class UdevPropertySource:
    """
    Yield the udev properties of a device as (name, value) pairs.

    The properties are read with udevadm(8), which includes the values
    udev's hwdb rules attach to the DMI device, such as the per-slot
    MEMORY_DEVICE_* entries.
    """

    def __init__(self, syspath: str = DMI_SYSPATH):
        self.syspath = syspath

    @property
    def command(self) -> str:
        return f"udevadm info --query=property --path={self.syspath}"

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        logger.debug(f"[UdevPropertySource] - running {self.command}")
        rc, stdout_raw, stderr_raw = system.run_piped_command(self.command)

        if isinstance(stderr_raw, FileNotFoundError):
            raise PropertySourceError(f"failed to execute udevadm: {stderr_raw}")

        stdout = stdout_raw if isinstance(stdout_raw, str) else ""
        stderr = stderr_raw if isinstance(stderr_raw, str) else ""
        if rc != 0:
            raise PropertySourceError(
                stderr or f'failed to execute "{self.command}"'
            )

        for line in stdout.splitlines():
            name, sep, value = line.partition("=")
            if sep and name:
                yield name, value


def collect_properties(source: PropertySource) -> dict[str, str]:
    """
    Snapshot a property source into a dict; later duplicates win.
    """
    props: dict[str, str] = {}
    for name, value in source:
        props[name] = value
    logger.debug(f"[collect_properties] - collected {len(props)} properties")
    return props
