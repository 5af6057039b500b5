"""synlog — filter, correlate, and summarize Synapse request logs."""

__version__ = "0.3.0"
