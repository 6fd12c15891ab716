class MemdevError(Exception):
    """
    Base class for every error raised while taking a memory inventory.
    """


class PropertySourceError(MemdevError):
    """
    The device property source could not be opened or read.
    """


class DeviceCountMissingError(MemdevError):
    def __init__(self, marker: str):
        self.marker = marker
        super().__init__(f'no "{marker}" property found')


class DeviceCountParseError(MemdevError, ValueError):
    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f'{name}="{value}" is not a valid device count')
