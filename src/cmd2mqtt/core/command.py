"""Command definitions and helpers shared by the scheduler and publisher"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LOCAL_TARGET = "local"
DEFAULT_INTERVAL = 60.0

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration string such as ``30s``, ``5m`` or ``1h30m``

    Args:
        text: Duration string (sequence of number+unit pairs, optional sign)

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the string is not a valid duration
    """
    if not isinstance(text, str):
        raise ValueError(f"invalid duration {text!r}")

    value = text.strip()
    sign = 1.0
    if value[:1] in ("+", "-"):
        if value[0] == "-":
            sign = -1.0
        value = value[1:]

    if value == "0":
        return 0.0
    if not value:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if not match:
            raise ValueError(f"invalid duration {text!r}")
        number, unit = match.groups()
        total += float(number) * _DURATION_UNITS[unit]
        pos = match.end()

    return sign * total


def sanitize_name(name: str) -> str:
    """Turn a display name into an identifier safe for topics and unique IDs

    ``"CPU Temp!"`` becomes ``"cpu_temp"``. Applying it twice is a no-op.
    """
    result = name.lower().replace(" ", "_").replace("-", "_")
    return "".join(ch for ch in result if ("a" <= ch <= "z") or ("0" <= ch <= "9") or ch == "_")


@dataclass(frozen=True)
class CommandSpec:
    """A shell command published as a sensor on a fixed cadence"""

    name: str
    command: str
    frequency: str = "60s"
    target_host: str = ""
    device_class: str = ""
    unit: str = ""
    icon: str = ""
    force_update: bool = False
    state_class: str = ""
    entity_category: str = ""
    expire_after: int = 0

    @property
    def is_local(self) -> bool:
        return self.target_host in ("", LOCAL_TARGET)

    @property
    def object_id(self) -> str:
        return sanitize_name(self.name)

    def interval(self, default: float = DEFAULT_INTERVAL) -> float:
        """Resolve the repeat interval in seconds

        Falls back to ``default`` if the frequency does not parse or is not
        positive.
        """
        try:
            seconds = parse_duration(self.frequency)
        except ValueError as e:
            logger.error(f"Invalid frequency for command {self.name}: {e}")
            return default

        if seconds <= 0:
            logger.error(f"Invalid frequency for command {self.name}: must be positive, got {self.frequency!r}")
            return default

        return seconds
