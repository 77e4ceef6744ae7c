"""Category scoring."""
