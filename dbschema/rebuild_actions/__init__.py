"""Built-in rebuild actions, discovered like user plugins."""
