"""banwatch - turn Minecraft log and ban-list mutations into ban/pardon reports."""

__version__ = "0.1.0"
