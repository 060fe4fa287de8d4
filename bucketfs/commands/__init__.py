"""CLI command implementations for bucketfs."""
