"""Active core selection — hands the picked core to the rest of the application."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from loguru import logger

from emushell.models.plugin import ActiveCore, PluginDescriptor

if TYPE_CHECKING:
    from emushell.config import Config


class SelectionHandler(Protocol):
    """Receives the core the user picked from a discovery result."""

    def select(self, descriptor: PluginDescriptor) -> ActiveCore: ...


class ConfigSelectionStore:
    """SelectionHandler that persists the active core into the config file."""

    def __init__(self, config: Config) -> None:
        self._config = config

    def select(self, descriptor: PluginDescriptor) -> ActiveCore:
        active = ActiveCore(path=str(descriptor.file_path), name=descriptor.display_name)
        with self._config.batch_update():
            self._config.set("active_core.path", active.path)
            self._config.set("active_core.name", active.name)
        logger.info(f"Active core: {active.name} ({active.path})")
        return active

    @property
    def active_core(self) -> ActiveCore:
        return self._config.active_core
