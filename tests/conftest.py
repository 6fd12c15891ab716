import pytest

UDEVADM_OUTPUT = """\
DEVPATH=/devices/virtual/dmi/id
SUBSYSTEM=dmi
MODALIAS=dmi:bvnLENOVO:bvrN3GET62W(1.37):svnLENOVO:pn21CB:
MEMORY_ARRAY_LOCATION=System Board Or Motherboard
MEMORY_ARRAY_MAX_CAPACITY=68719476736
MEMORY_ARRAY_NUM_DEVICES=2
MEMORY_DEVICE_0_TOTAL_WIDTH=64
MEMORY_DEVICE_0_DATA_WIDTH=64
MEMORY_DEVICE_0_SIZE=8589934592
MEMORY_DEVICE_0_FORM_FACTOR=SODIMM
MEMORY_DEVICE_0_LOCATOR=DIMM A
MEMORY_DEVICE_0_BANK_LOCATOR=BANK 0
MEMORY_DEVICE_0_TYPE=DDR5
MEMORY_DEVICE_0_SPEED_MTS=5600
MEMORY_DEVICE_0_MANUFACTURER=Samsung
MEMORY_DEVICE_0_SERIAL_NUMBER=00000000
MEMORY_DEVICE_0_PART_NUMBER=M425R1GB4BB0-CQKOL
MEMORY_DEVICE_0_CONFIGURED_SPEED_MTS=4800
MEMORY_DEVICE_1_TOTAL_WIDTH=64
MEMORY_DEVICE_1_DATA_WIDTH=64
MEMORY_DEVICE_1_SIZE=8589934592
MEMORY_DEVICE_1_FORM_FACTOR=SODIMM
MEMORY_DEVICE_1_LOCATOR=DIMM B
MEMORY_DEVICE_1_BANK_LOCATOR=BANK 0
MEMORY_DEVICE_1_TYPE=DDR5
MEMORY_DEVICE_1_SPEED_MTS=5600
MEMORY_DEVICE_1_MANUFACTURER=Samsung
MEMORY_DEVICE_1_SERIAL_NUMBER=00000000
MEMORY_DEVICE_1_PART_NUMBER=M425R1GB4BB0-CQKOL
MEMORY_DEVICE_1_CONFIGURED_SPEED_MTS=4800
"""


def parse_output(output: str) -> dict[str, str]:
    return dict(line.split("=", 1) for line in output.splitlines())


@pytest.fixture
def udevadm_output() -> str:
    return UDEVADM_OUTPUT


@pytest.fixture
def props() -> dict[str, str]:
    """Property snapshot of a laptop with two DDR5 SODIMMs"""
    return parse_output(UDEVADM_OUTPUT)


@pytest.fixture
def fake_udevadm(monkeypatch):
    """
    Replace the command runner used by the udev property source.

    Call the returned function with (rc, stdout, stderr) to set what
    udevadm "prints"; the commands that were run are recorded.
    """
    from memdev.util import system

    calls: list[str] = []
    result: dict[str, tuple] = {"value": (0, UDEVADM_OUTPUT, "")}

    def run_piped_command(command: str = ""):
        calls.append(command)
        return result["value"]

    def set_result(rc, stdout, stderr):
        result["value"] = (rc, stdout, stderr)

    monkeypatch.setattr(system, "run_piped_command", run_piped_command)
    set_result.calls = calls
    return set_result
