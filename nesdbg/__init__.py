"""Host-side debug console for the NES FPGA."""

__version__ = "1.0.0"
