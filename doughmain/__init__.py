"""DoughMain backend: bank linking, transaction sync and the admin console."""

__version__ = "0.1.0"
