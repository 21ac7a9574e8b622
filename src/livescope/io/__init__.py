"""Frame sources feeding the engine."""
