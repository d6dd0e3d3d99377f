"""
Chain Registration - collects (main, member) pairs before any command runs.

Two sources, loaded in this order:
1. ``chain_member`` tags attached to command callbacks
2. An optional YAML chain file

Chain file format::

    chains:
      foo:hello:
        - bar:hi
        - ${EXTRA_MEMBER}
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING, Union

import yaml
from jsonschema import ValidationError, validate

from chain_command_cli.exceptions import ChainConfigurationError

if TYPE_CHECKING:
    from chain_command_cli.services.application import ConsoleApplication
    from chain_command_cli.services.registry import ChainCommandRegistry

logger = logging.getLogger(__name__)

CHAIN_MEMBER_TAGS_ATTR = "__chain_member_tags__"
MAIN_COMMAND_ATTRIBUTE = "main_command"

CHAIN_FILE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "chains": {
            "type": "object",
            "propertyNames": {"minLength": 1},
            "additionalProperties": {
                "type": "array",
                "items": {"type": "string", "minLength": 1},
            },
        }
    },
    "required": ["chains"],
}

ChainPair = Tuple[str, str]


def chain_member(main_command: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Declare the decorated command a member of ``main_command``'s chain.

    Can be stacked to declare several chains; the last one wins for the
    member -> main lookup.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        tags = list(getattr(func, CHAIN_MEMBER_TAGS_ATTR, []))
        tags.append({MAIN_COMMAND_ATTRIBUTE: main_command})
        setattr(func, CHAIN_MEMBER_TAGS_ATTR, tags)
        return func

    return decorator


def collect_tagged_pairs(application: "ConsoleApplication") -> List[ChainPair]:
    """
    Collect pairs from the tags of every registered command.

    Raises:
        ChainConfigurationError: If a tag has no valid main command name.
    """
    pairs: List[ChainPair] = []
    for member_command, callback in application.callbacks().items():
        for tag in getattr(callback, CHAIN_MEMBER_TAGS_ATTR, []):
            if MAIN_COMMAND_ATTRIBUTE not in tag:
                raise ChainConfigurationError(
                    f'Command "{member_command}" is tagged as a chain member '
                    f'but does not have the "{MAIN_COMMAND_ATTRIBUTE}" attribute.'
                )

            main_command = tag[MAIN_COMMAND_ATTRIBUTE]
            if not isinstance(main_command, str) or not main_command:
                raise ChainConfigurationError(
                    f'Command "{member_command}" is tagged as a chain member '
                    f'but the "{MAIN_COMMAND_ATTRIBUTE}" attribute is not a valid '
                    "command name."
                )

            pairs.append((main_command, member_command))
    return pairs


def _substitute_env_vars(content: str) -> str:
    """Substitute environment variables in format ${VAR_NAME}"""
    pattern = re.compile(r"\$\{([^}^{]+)\}")

    def replace(match):
        value = os.getenv(match.group(1))
        if value is None:
            # Leave as is
            return match.group(0)
        return value

    return pattern.sub(replace, content)


def load_chain_file(path: Union[str, Path]) -> List[ChainPair]:
    """
    Load pairs from a YAML chain file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ChainConfigurationError: If the file does not match the chain schema.
    """
    chain_path = Path(path)
    if not chain_path.exists():
        raise FileNotFoundError(f"Chain file not found: {chain_path}")

    with open(chain_path, "r", encoding="utf-8") as f:
        content = _substitute_env_vars(f.read())

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ChainConfigurationError(f"Invalid YAML in {chain_path}: {e}") from e

    try:
        validate(instance=data, schema=CHAIN_FILE_SCHEMA)
    except ValidationError as e:
        raise ChainConfigurationError(
            f"Invalid chain file {chain_path}: {e.message}"
        ) from e

    pairs: List[ChainPair] = []
    for main_command, members in data["chains"].items():
        for member_command in members:
            pairs.append((str(main_command), member_command))

    logger.info("Loaded %d chain pair(s) from %s", len(pairs), chain_path)
    return pairs


def register_chains(
    registry: "ChainCommandRegistry",
    application: "ConsoleApplication",
    chain_file: Optional[Union[str, Path]] = None,
) -> int:
    """
    Load tag and chain file pairs into ``registry``.

    Returns:
        Number of pairs handed to the registry.
    """
    pairs = collect_tagged_pairs(application)
    if chain_file:
        pairs.extend(load_chain_file(chain_file))

    for main_command, member_command in pairs:
        for name in (main_command, member_command):
            if not application.has(name):
                logger.warning(
                    "Chain references unknown command %s", name, extra={"command": name}
                )

    registry.register_chains(pairs)
    return len(pairs)
