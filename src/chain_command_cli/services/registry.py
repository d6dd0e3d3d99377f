"""
Chain Command Registry.

Stores which member commands belong to which main command chain.

Key Features:
- Ordered member lists (registration order = execution order)
- Reverse lookup from member to its owning main command
- Duplicate registrations are kept, so a member can run twice in one chain
- A member claimed by a second main command moves to it (last registration wins)
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ChainCommandRegistry:
    """
    In-memory mapping between main commands and their member commands.

    The registry is filled once during startup and only read afterwards.
    Nothing is ever removed from it.

    Example:
        >>> registry = ChainCommandRegistry()
        >>> registry.add_member_command("foo:hello", "bar:hi")
        >>> registry.get_member_command_names("foo:hello")
        ['bar:hi']
        >>> registry.get_main_command_name("bar:hi")
        'foo:hello'
    """

    def __init__(self, pairs: Optional[Iterable[Tuple[str, str]]] = None):
        """
        Initialize the registry.

        Args:
            pairs: Optional ``(main_command, member_command)`` pairs to load
                in order, exactly as if passed to ``add_member_command``.
        """
        # main_command_name -> [member_command_name, ...]
        self._chains: Dict[str, List[str]] = {}
        # member_command_name -> main_command_name
        self._member_to_main: Dict[str, str] = {}

        if pairs is not None:
            self.register_chains(pairs)

    def add_member_command(self, main_command: str, member_command: str) -> None:
        """Register ``member_command`` at the end of ``main_command``'s chain."""
        if main_command == member_command:
            logger.warning(
                "Attempted to register command %s as a member of itself",
                main_command,
                extra={"command": main_command},
            )
            return

        previous_main = self._member_to_main.get(member_command)
        if previous_main is not None and previous_main != main_command:
            logger.warning(
                "%s was a member of %s command chain and is now claimed by %s",
                member_command,
                previous_main,
                main_command,
                extra={
                    "member_command": member_command,
                    "previous_main_command": previous_main,
                    "main_command": main_command,
                },
            )

        self._chains.setdefault(main_command, []).append(member_command)
        self._member_to_main[member_command] = main_command

        logger.info(
            "%s registered as a member of %s command chain",
            member_command,
            main_command,
            extra={"member_command": member_command, "main_command": main_command},
        )

    def register_chains(self, pairs: Iterable[Tuple[str, str]]) -> None:
        """Bulk-load ``(main_command, member_command)`` pairs in order."""
        for main_command, member_command in pairs:
            self.add_member_command(main_command, member_command)

    def is_member_command(self, command_name: str) -> bool:
        """Check whether a command is registered as a member of any chain."""
        return command_name in self._member_to_main

    def is_main_command(self, command_name: str) -> bool:
        """Check whether a command owns a chain with at least one member."""
        return bool(self._chains.get(command_name))

    def get_member_command_names(self, main_command: str) -> List[str]:
        """
        Get the member commands registered for a main command.

        Returns:
            A new list in registration order; empty if none are registered.
        """
        return list(self._chains.get(main_command, []))

    def get_main_command_name(self, member_command: str) -> Optional[str]:
        """Get the main command owning ``member_command``, or None."""
        return self._member_to_main.get(member_command)

    def main_command_names(self) -> List[str]:
        """Main commands with a non-empty chain, in first-registration order."""
        return [name for name, members in self._chains.items() if members]
