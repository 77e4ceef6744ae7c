"""Page extraction and chunking."""
