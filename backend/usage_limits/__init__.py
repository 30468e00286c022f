"""Usage limits backend: quota records, usage metering, and lazy cleanup."""
