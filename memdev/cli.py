import json
import logging
from collections import OrderedDict
from pathlib import Path

import click
import psutil
from dacite import DaciteError

from memdev import glyphs
from memdev.errors import MemdevError
from memdev.memory import MemDevice, Memory
from memdev.properties import DMI_SYSPATH
from memdev.util import conversion, log, system

context_settings = dict(help_option_names=["-h", "--help"])
logger = logging.getLogger("memdev")


def describe_device(idx: int, device: MemDevice) -> str:
    """
    One tooltip line per DIMM, e.g. "DIMM 00 - 16.00 GiB DDR5 SODIMM @ 4800 MT/s".
    """
    parts: list[str] = []
    size = device.extra_props.get("SIZE")
    if size is not None and size.isdecimal():
        parts.append(conversion.byte_converter(number=int(size), unit="auto"))
    elif size:
        parts.append(size)

    parts.append(str(device.mem_type))

    if device.form_factor:
        parts.append(device.form_factor)

    if device.frequency is not None:
        parts.append(f"@ {device.frequency} MT/s")

    locator = device.extra_props.get("LOCATOR") or f"DIMM {idx:02d}"
    line = f"{locator} - {' '.join(parts)}"
    if device.manufacturer:
        line += f" ({device.manufacturer})"
    return line


def generate_tooltip(memory: Memory) -> str:
    tooltip: list[str] = []
    tooltip.append("Memory")
    tooltip_od: OrderedDict[str, str | int] = OrderedDict()

    tooltip_od["Slots"] = len(memory.devices)
    tooltip_od["Populated"] = len(memory.populated())

    if memory.mem_types():
        tooltip_od["Type"] = ", ".join(memory.mem_types())

    if memory.form_factors():
        tooltip_od["Form Factor"] = ", ".join(memory.form_factors())

    if memory.manufacturers():
        tooltip_od["Manufacturer"] = ", ".join(memory.manufacturers())

    if memory.avg_frequency() > 0:
        tooltip_od["Speed"] = f"{memory.avg_frequency()} MHz"

    max_key_length = 0
    for key in tooltip_od.keys():
        max_key_length = len(key) if len(key) > max_key_length else max_key_length

    for key, value in tooltip_od.items():
        tooltip.append(f"  {key:{max_key_length}} : {value}")

    populated = [
        (idx, device) for idx, device in enumerate(memory.devices) if device.populated
    ]
    if populated:
        tooltip.append("")
        for idx, device in populated:
            tooltip.append(describe_device(idx=idx, device=device))

    return "\n".join(tooltip)


def get_usage(unit: str) -> tuple[float, float, str, int]:
    """
    Return used, total, the unit label and the percentage of free memory.
    """
    vm = psutil.virtual_memory()
    total, suffix = conversion.scale_bytes(number=vm.total, unit=unit)
    used, _ = conversion.scale_bytes(number=vm.used, unit=suffix[:-1])
    pct_free = 100 - int(vm.percent)
    return used, total, suffix, pct_free


def load_inventory(path: Path) -> Memory:
    logger.debug(f"[load_inventory] - reading {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return Memory.from_dict(json.load(f))
    except (OSError, ValueError, DaciteError) as e:
        raise MemdevError(f'failed to load "{path}": {e}') from e


def render_waybar(memory: Memory, unit: str) -> dict[str, object]:
    used, total, suffix, pct_free = get_usage(unit=unit)

    if pct_free < 20:
        output_class = "critical"
    elif pct_free < 50:
        output_class = "warning"
    else:
        output_class = "good"

    return {
        "text": f"{glyphs.md_memory}{glyphs.icon_spacer}{memory.display_unit(used, total, suffix)}",
        "class": output_class,
        "tooltip": generate_tooltip(memory),
    }


@click.command(
    help="Inventory the installed memory modules from DMI/SMBIOS udev properties",
    context_settings=context_settings,
)
@click.option(
    "-p",
    "--syspath",
    default=DMI_SYSPATH,
    show_default=True,
    help="The sysfs device carrying the DMI memory properties",
)
@click.option(
    "-i",
    "--input",
    "input_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Read a JSON inventory written with --format json instead of probing",
)
@click.option(
    "-f",
    "--format",
    "output_format",
    default="text",
    show_default=True,
    type=click.Choice(["text", "json", "waybar"]),
    help="The output format",
)
@click.option(
    "-u",
    "--unit",
    default="auto",
    show_default=True,
    type=click.Choice(conversion.valid_storage_units()),
    help="The unit to use for used / total",
)
@click.option(
    "-c",
    "--contains-match",
    default=False,
    is_flag=True,
    help="Find the device count by substring instead of exact property name",
)
@click.option("-d", "--debug", default=False, is_flag=True, help="Enable debug logging")
def main(
    syspath: str,
    input_file: Path | None,
    output_format: str,
    unit: str,
    contains_match: bool,
    debug: bool,
):
    try:
        log.configure(
            debug=debug,
            name="memdev",
            logfile=system.get_cache_directory() / "memdev.log",
        )
    except OSError as e:
        click.echo(f"memdev: file logging disabled: {e}", err=True)
    logger.info(f"[main] - entering with format={output_format}")

    try:
        if input_file is not None:
            memory = load_inventory(input_file)
        else:
            memory = Memory.probe(
                syspath=syspath, match="contains" if contains_match else "exact"
            )
    except MemdevError as e:
        logger.error(f"[main] - {e}")
        if output_format == "waybar":
            print(
                json.dumps(
                    {
                        "text": f"{glyphs.md_alert}{glyphs.icon_spacer}{e}",
                        "class": "error",
                        "tooltip": "System Memory",
                    }
                )
            )
            return
        raise click.ClickException(str(e))

    if output_format == "json":
        print(json.dumps(memory.to_dict(), indent=2))
    elif output_format == "waybar":
        print(json.dumps(render_waybar(memory, unit=unit)))
    else:
        used, total, suffix, _ = get_usage(unit=unit)
        print(memory.display_unit(used, total, suffix))
        for idx, device in enumerate(memory.devices):
            print(f"  {describe_device(idx=idx, device=device)}")


if __name__ == "__main__":
    main()
