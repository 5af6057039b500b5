"""synlog — filter, correlate, and summarize Synapse request logs."""

from synlog.cli import main

if __name__ == "__main__":
    main()
