"""Command plugins, discovered by PluginLoader from *_command.py files"""
