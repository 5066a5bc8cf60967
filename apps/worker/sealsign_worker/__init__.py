"""SealSign notification worker."""
