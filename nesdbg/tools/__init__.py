"""Developer tools for the NES FPGA debug port."""
