"""browserrun - parallel browser test orchestration."""

__version__ = "0.1.0"
