"""Share format, metadata envelope, errors and the split/recover pipeline."""
