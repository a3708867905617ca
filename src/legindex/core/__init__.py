"""Index synchronization core — updater, rebuild controller, search and engine."""
