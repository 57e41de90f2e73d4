"""RomShelf — ROM library reconciliation, emulator resolution and batch enrichment."""

__version__ = "0.3.0"
