"""Path context, config loading, variable resolution and sandbox validation."""
