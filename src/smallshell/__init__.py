"""smallshell - a minimal command interpreter with zombie-free child reaping."""

__version__ = "2.51.0"
