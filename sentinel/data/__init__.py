"""Chain data access: ERC-20 reads and Transfer log retrieval."""
