"""Discovery of already-installed packages on the local filesystem."""
