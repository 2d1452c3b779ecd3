"""Built-in field types. Every module here is scanned by ``TypeRegistry.load_builtin_types``."""
