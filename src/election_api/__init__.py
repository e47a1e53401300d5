"""Election results API: ballot ledger, live tallies and winner resolution."""

__version__ = "0.1.0"
