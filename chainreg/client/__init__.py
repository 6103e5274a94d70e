"""Client-side orchestration and transports for the registry."""
