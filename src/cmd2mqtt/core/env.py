"""Environment variables: .env files, ${VAR} expansion and env-only configuration"""

import logging
import os
import re
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "COMMAND_"
DEFAULT_FREQUENCY = "60s"
DEFAULT_CLIENT_ID = "ha-command-to-mqtt"

# Suffix of a COMMAND_<NAME>_<SUFFIX> variable -> command field
COMMAND_FIELDS = {
    "_FREQUENCY": "frequency",
    "_DEVICE_CLASS": "device_class",
    "_UNIT": "unit",
    "_ICON": "icon",
    "_TARGET_HOST": "target_host",
    "_FORCE_UPDATE": "force_update",
    "_STATE_CLASS": "state_class",
    "_ENTITY_CATEGORY": "entity_category",
    "_EXPIRE_AFTER": "expire_after",
}

_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

# Shell command text is handed to the shell as written
VERBATIM_KEYS = frozenset({"command"})


def load_env_file(file_path: str) -> Dict[str, str]:
    """Read KEY=VALUE lines from a .env file

    Blank lines and ``#`` comments are skipped, matching single or double
    quotes around a value are stripped.

    Args:
        file_path: Path to .env file

    Returns:
        Variables found in the file (empty if the file is missing)
    """
    file_path = os.path.expanduser(file_path)
    variables: Dict[str, str] = {}

    if not os.path.exists(file_path):
        logger.warning(f"Environment file not found: {file_path}")
        return variables

    with open(file_path, "r") as f:
        for line_num, raw in enumerate(f, 1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith("export "):
                line = line[len("export "):].lstrip()

            if "=" not in line:
                logger.warning(f"Invalid line in {file_path}:{line_num}: {line}")
                continue

            key, value = (part.strip() for part in line.split("=", 1))
            if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
                value = value[1:-1]

            variables[key] = value

    logger.info(f"Loaded {len(variables)} variables from {file_path}")
    return variables


def expand_value(value: str, variables: Mapping[str, str]) -> str:
    """Expand ``$VAR``, ``${VAR}``, ``${VAR:-default}`` and ``${VAR:?message}``

    Unknown plain references are left untouched.

    Raises:
        ValueError: If a ``${VAR:?message}`` variable is not set
    """
    def replace(match):
        expr, bare = match.group(1), match.group(2)
        if bare is not None:
            return variables.get(bare, match.group(0))

        if ":-" in expr:
            name, default = expr.split(":-", 1)
            return variables.get(name.strip(), default)

        if ":?" in expr:
            name, message = expr.split(":?", 1)
            name = name.strip()
            if name not in variables:
                raise ValueError(f"Required variable not set: {name} ({message})")
            return variables[name]

        return variables.get(expr.strip(), match.group(0))

    return _VAR_PATTERN.sub(replace, value)


def expand_tree(data: Any, variables: Mapping[str, str]) -> Any:
    """Recursively expand variables in the strings of a YAML document

    Values under a key in ``VERBATIM_KEYS`` are left as written.
    """
    if isinstance(data, str):
        return expand_value(data, variables)
    if isinstance(data, dict):
        return {
            key: value if key in VERBATIM_KEYS else expand_tree(value, variables)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [expand_tree(item, variables) for item in data]
    return data


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _parse_int(name: str, value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer value for {name}: {value!r}")
        return None


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Build a configuration document from environment variables

    ``MQTT_BROKER``, ``MQTT_PORT``, ``MQTT_USERNAME``, ``MQTT_PASSWORD`` and
    ``MQTT_CLIENT_ID`` describe the broker. Each ``COMMAND_<NAME>=<command>``
    defines a command; ``COMMAND_<NAME>_FREQUENCY`` and the other suffixes in
    ``COMMAND_FIELDS`` set its options.

    Args:
        environ: Variables to read (defaults to ``os.environ``)

    Returns:
        Dict shaped like the YAML configuration file

    Raises:
        ValueError: If no command is defined
    """
    env = os.environ if environ is None else environ

    port = _parse_int("MQTT_PORT", env.get("MQTT_PORT") or "1883") or 1883
    data: Dict[str, Any] = {
        "mqtt": {
            "broker": env.get("MQTT_BROKER") or "localhost",
            "port": port,
            "username": env.get("MQTT_USERNAME", ""),
            "password": env.get("MQTT_PASSWORD", ""),
            "client_id": env.get("MQTT_CLIENT_ID") or DEFAULT_CLIENT_ID,
        },
    }

    commands: Dict[str, Dict[str, Any]] = {}
    for key in sorted(env):
        if not key.startswith(COMMAND_PREFIX):
            continue
        value = env[key]
        parsed = key[len(COMMAND_PREFIX):]

        for suffix, field in COMMAND_FIELDS.items():
            if parsed.endswith(suffix) and len(parsed) > len(suffix):
                name = parsed[:-len(suffix)]
                entry = commands.setdefault(name, {"name": name})
                if field == "force_update":
                    entry[field] = _parse_bool(value)
                elif field == "expire_after":
                    number = _parse_int(key, value)
                    if number is not None:
                        entry[field] = number
                else:
                    entry[field] = value
                break
        else:
            entry = commands.setdefault(parsed, {"name": parsed})
            entry["command"] = value

    command_list: List[Dict[str, Any]] = []
    for entry in commands.values():
        if not entry.get("command"):
            continue
        entry.setdefault("frequency", DEFAULT_FREQUENCY)
        command_list.append(entry)

    if not command_list:
        raise ValueError("no commands configured")

    data["commands"] = command_list
    return data
