"""Core configuration, wiring and instrumentation."""
