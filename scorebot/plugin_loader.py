#!/usr/bin/env python3
"""
Plugin loader for dynamic command discovery and loading
Handles scanning, loading, and registering command plugins
"""

import os
import inspect
import importlib
from pathlib import Path
from typing import Dict, List, Any, Optional, Type

from .commands.base_command import BaseCommand

COMMANDS_PACKAGE = f"{__package__}.commands"


class PluginLoader:
    """Handles dynamic loading and discovery of command plugins"""

    def __init__(self, bot, commands_dir: Optional[str] = None):
        self.bot = bot
        self.logger = bot.logger
        self.commands_dir = commands_dir or os.path.join(os.path.dirname(__file__), 'commands')
        self.loaded_plugins: Dict[str, BaseCommand] = {}
        self.plugin_metadata: Dict[str, Dict[str, Any]] = {}
        self.keyword_mappings: Dict[str, str] = {}  # keyword -> plugin_name
        self._failed_plugins: Dict[str, str] = {}  # plugin_name -> error_message

    def discover_plugins(self) -> List[str]:
        """Discover all *_command.py files in the commands directory"""
        plugin_files = []
        commands_path = Path(self.commands_dir)

        if not commands_path.exists():
            self.logger.error(f"Commands directory does not exist: {self.commands_dir}")
            return plugin_files

        for file_path in sorted(commands_path.glob("*_command.py")):
            if file_path.name != "base_command.py":
                plugin_files.append(file_path.stem)

        self.logger.info(f"Discovered {len(plugin_files)} potential plugin files: {plugin_files}")
        return plugin_files

    def _validate_plugin(self, plugin_class: Type[BaseCommand]) -> List[str]:
        """Validate a plugin class before instantiation (async execute, list keywords)"""
        errors = []

        if not inspect.iscoroutinefunction(getattr(plugin_class, 'execute', None)):
            errors.append("Plugin 'execute' method must be async")

        keywords = getattr(plugin_class, 'keywords', None)
        if keywords is not None and not isinstance(keywords, list):
            errors.append("Plugin 'keywords' must be a list")

        return errors

    def _validate_plugin_instance(self, plugin_instance: BaseCommand) -> List[str]:
        errors = []
        if not plugin_instance.name:
            errors.append("Plugin 'name' attribute is empty or not set")
        if not isinstance(getattr(plugin_instance, 'keywords', None), list):
            errors.append("Plugin 'keywords' must be a list")
        return errors

    def load_plugin(self, plugin_name: str) -> Optional[BaseCommand]:
        """Load a single plugin by module name (without .py extension)"""
        module_path = f"{COMMANDS_PACKAGE}.{plugin_name}"
        try:
            module = importlib.import_module(module_path)

            # The command class is the BaseCommand subclass defined in this module
            command_class = None
            for _, obj in inspect.getmembers(module, inspect.isclass):
                if issubclass(obj, BaseCommand) and obj is not BaseCommand and obj.__module__ == module_path:
                    command_class = obj
                    break

            if not command_class:
                error_msg = f"No valid command class found in {plugin_name}"
                self.logger.warning(error_msg)
                self._failed_plugins[plugin_name] = error_msg
                return None

            validation_errors = self._validate_plugin(command_class)
            if validation_errors:
                error_msg = f"Plugin validation failed: {', '.join(validation_errors)}"
                self.logger.error(f"Failed to load plugin '{plugin_name}': {error_msg}")
                self._failed_plugins[plugin_name] = error_msg
                return None

            plugin_instance = command_class(self.bot)

            instance_errors = self._validate_plugin_instance(plugin_instance)
            if instance_errors:
                error_msg = f"Plugin instance validation failed: {', '.join(instance_errors)}"
                self.logger.error(f"Failed to load plugin '{plugin_name}': {error_msg}")
                self._failed_plugins[plugin_name] = error_msg
                return None

            self.logger.info(f"Successfully loaded plugin: {plugin_instance.name} from {plugin_name}")
            return plugin_instance

        except Exception as e:
            error_msg = str(e)
            self.logger.error(f"Failed to load plugin '{plugin_name}': {error_msg}")
            self._failed_plugins[plugin_name] = error_msg
            return None

    def load_all_plugins(self) -> Dict[str, BaseCommand]:
        """Load all discovered plugins, skipping those disabled in config"""
        loaded_plugins = {}

        for plugin_file in self.discover_plugins():
            plugin_instance = self.load_plugin(plugin_file)
            if not plugin_instance:
                continue
            if not plugin_instance.is_enabled():
                self.logger.info(f"Plugin '{plugin_instance.name}' is disabled in config, skipping")
                continue
            metadata = plugin_instance.get_metadata()
            loaded_plugins[metadata['name']] = plugin_instance
            self.plugin_metadata[metadata['name']] = metadata

        for plugin_name in loaded_plugins:
            self._build_keyword_mappings(plugin_name, self.plugin_metadata[plugin_name])

        self.loaded_plugins = loaded_plugins

        self.logger.info(f"Loaded {len(loaded_plugins)} plugins: {list(loaded_plugins.keys())}")
        if self._failed_plugins:
            self.logger.warning(f"Failed to load {len(self._failed_plugins)} plugin(s): {list(self._failed_plugins.keys())}")
            for plugin_name, error_msg in self._failed_plugins.items():
                self.logger.warning(f"  - {plugin_name}: {error_msg}")

        return loaded_plugins

    def _build_keyword_mappings(self, plugin_name: str, metadata: Dict[str, Any]):
        for keyword in metadata.get('keywords', []):
            existing = self.keyword_mappings.get(keyword.lower())
            if existing and existing != plugin_name:
                self.logger.warning(f"Keyword '{keyword}' of '{plugin_name}' conflicts with plugin '{existing}'")
                continue
            self.keyword_mappings[keyword.lower()] = plugin_name

    def get_plugin_by_keyword(self, keyword: str) -> Optional[BaseCommand]:
        plugin_name = self.keyword_mappings.get(keyword.lower())
        if plugin_name:
            return self.loaded_plugins.get(plugin_name)
        return None

    def get_plugin_by_name(self, name: str) -> Optional[BaseCommand]:
        return self.loaded_plugins.get(name)

    def get_failed_plugins(self) -> Dict[str, str]:
        """Return dict of plugins that failed to load with their error messages"""
        return self._failed_plugins.copy()
