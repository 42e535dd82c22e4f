"""Document upload and retrieval-augmented chat service."""
