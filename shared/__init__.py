"""Cross-cutting helpers shared by every lexsync package: component loggers and JSON log output."""
