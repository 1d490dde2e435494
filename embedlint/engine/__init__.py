"""Analysis engines: the engine contract, the registry and the built-in engine."""
