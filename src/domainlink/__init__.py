"""domainlink - attach and verify custom domains for hosted projects."""

__version__ = "0.1.0"
