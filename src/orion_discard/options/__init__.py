"""Choice-list sources for the cascading selector."""

from .source import HttpOptionsSource, OptionsSource, StaticOptionsSource, parse_options

__all__ = ["OptionsSource", "HttpOptionsSource", "StaticOptionsSource", "parse_options"]
