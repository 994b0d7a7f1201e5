"""OAuth helper commands (authorization URLs, state checks, key generation)."""
