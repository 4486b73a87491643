"""Helper programs runnable with ``python -m rx_tools.servers.<name>``."""
