"""tailwatch – live aircraft tracking backend."""
